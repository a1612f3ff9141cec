from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class StatusLine:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


def ok(label: str, detail: Optional[str] = None) -> str:
    return StatusLine(label, "OK", detail).render()


def error(label: str, detail: Optional[str] = None) -> str:
    return StatusLine(label, "ERROR", detail).render()


def changed(label: str, detail: Optional[str] = None) -> str:
    return StatusLine(label, "CHANGED", detail).render()


def removed(label: str, detail: Optional[str] = None) -> str:
    return StatusLine(label, "REMOVED", detail).render()
