from __future__ import annotations

import re
from urllib.parse import quote, urlsplit, urlunsplit

PLACEHOLDER = "#"
_ALLOWED_SCHEMES = {"http": 80, "https": 443}
_INVALID_HOST = re.compile(r"[\s<>\"'`^{}|\\]")
_PATH_SAFE = "/%:@!$&'()*+,;=~-._"
_QUERY_SAFE = _PATH_SAFE + "?"


def sanitize_link(raw: object) -> str:
    """Return a canonical http(s) URL for ``raw`` or ``#`` when it is unsafe.

    Never raises: non-strings, relative references, other schemes and
    malformed authorities all collapse to the placeholder.
    """
    if not isinstance(raw, str):
        return PLACEHOLDER
    text = raw.strip()
    if not text:
        return PLACEHOLDER
    try:
        parts = urlsplit(text)
        scheme = parts.scheme.lower()
        if scheme not in _ALLOWED_SCHEMES:
            return PLACEHOLDER
        host = parts.hostname
        if not host or _INVALID_HOST.search(host):
            return PLACEHOLDER
        port = parts.port

        netloc = f"[{host}]" if ":" in host else host
        if parts.username is not None:
            userinfo = quote(parts.username, safe="%")
            if parts.password is not None:
                userinfo += ":" + quote(parts.password, safe="%")
            netloc = f"{userinfo}@{netloc}"
        if port is not None and port != _ALLOWED_SCHEMES[scheme]:
            netloc = f"{netloc}:{port}"

        path = quote(parts.path or "/", safe=_PATH_SAFE)
        query = quote(parts.query, safe=_QUERY_SAFE)
        fragment = quote(parts.fragment, safe=_QUERY_SAFE)
        return urlunsplit((scheme, netloc, path, query, fragment))
    # UnicodeEncodeError (lone surrogates) is a ValueError too.
    except ValueError:
        return PLACEHOLDER
