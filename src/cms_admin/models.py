from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(slots=True)
class FilterEffect:
    """A single image operation, e.g. ``thumbnail`` with ``width``/``height``."""

    name: str
    width: Optional[int] = None
    height: Optional[int] = None
    mode: Optional[str] = None
    x: int = 0
    y: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterEffect":
        params = data.get("params") or {}
        return cls(
            name=str(data["name"]),
            width=_optional_int(params.get("width")),
            height=_optional_int(params.get("height")),
            mode=params.get("mode"),
            x=int(params.get("x") or 0),
            y=int(params.get("y") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        params: dict[str, Any] = {"width": self.width, "height": self.height}
        if self.mode is not None:
            params["mode"] = self.mode
        if self.x or self.y:
            params.update(x=self.x, y=self.y)
        return {"name": self.name, "params": params}


@dataclass(slots=True)
class FilterDefinition:
    """Named chain of effects applied to a file to produce a derived image."""

    id: int
    identifier: str
    name: str = ""
    effects: List[FilterEffect] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.identifier

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterDefinition":
        return cls(
            id=int(data["id"]),
            identifier=str(data["identifier"]),
            name=str(data.get("name") or ""),
            effects=[FilterEffect.from_dict(item) for item in data.get("effects") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "identifier": self.identifier,
            "name": self.name,
            "effects": [effect.to_dict() for effect in self.effects],
        }


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)
