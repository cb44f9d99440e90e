from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Post:
    id: str
    title: str
    link: str
    description: str
    image: str
    source: str
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["createdAt"] = data.pop("created_at")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        if not isinstance(data, dict):
            raise ValueError(f"post must be an object, got {type(data).__name__}")
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            link=str(data.get("link") or ""),
            description=str(data.get("description") or ""),
            image=str(data.get("image") or ""),
            source=str(data.get("source") or ""),
            created_at=int(data.get("createdAt") or 0),
        )
