from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

TagValue = Union[str, int, float, bool, bytes, None, List["TagValue"], Dict[str, "TagValue"]]
TagTree = Dict[str, TagValue]
TagPath = Tuple[Union[str, int], ...]


@dataclass(frozen=True, slots=True)
class TagChange:
    """A single mutation made while sanitising a tag tree."""

    path: TagPath
    action: str
    old: Any = None
    new: Any = None

    @property
    def label(self) -> str:
        parts: list[str] = []
        for key in self.path:
            if isinstance(key, int):
                parts.append(f"[{key}]")
            elif parts:
                parts.append(f".{key}")
            else:
                parts.append(str(key))
        return "".join(parts) or "<root>"


TagObserver = Callable[[TagChange], None]


@dataclass(slots=True)
class CleanResult:
    path: Path
    ok: bool
    message: str
    changes: List[TagChange] = field(default_factory=list)
    written: bool = False


@dataclass(slots=True)
class ScanEntry:
    file: str
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_record(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"file": self.file, "error": self.error}
        return {"file": self.file, "metadata": to_jsonable(self.metadata)}


class ReadError(Exception):
    """Raised when a file is missing, unreadable or carries no tag block."""


class WriteError(Exception):
    """Raised when cleaned tags could not be persisted."""


def to_jsonable(value: object) -> object:
    if isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    return value
