from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_NAMES = ("tag-scrub.yaml", "tag-scrub.yml", "config.yaml", "config.yml")


class LibrarySettings(BaseModel):
    include_extensions: List[str] = Field(default_factory=lambda: [".mp3", ".flac"])
    exclude_patterns: List[str] = Field(default_factory=list)
    recursive: bool = False

    @field_validator("include_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, values: List[str]) -> List[str]:
        normalized = []
        for value in values:
            ext = str(value).strip().lower()
            if ext and not ext.startswith("."):
                ext = f".{ext}"
            if ext:
                normalized.append(ext)
        return normalized


class CleaningSettings(BaseModel):
    compact_records: bool = False
    dry_run: bool = False
    worker_concurrency: int = Field(default=4, ge=1)


class Settings(BaseModel):
    library: LibrarySettings = Field(default_factory=LibrarySettings)
    cleaning: CleaningSettings = Field(default_factory=CleaningSettings)

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})

    @classmethod
    def resolve(cls, explicit_path: Optional[Path]) -> "Settings":
        path = find_config(explicit_path)
        if path is None:
            return cls()
        return cls.load(path)


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise FileNotFoundError(f"Config file not found: {explicit_path}")
        return explicit_path
    cwd = Path.cwd()
    for name in CONFIG_NAMES:
        candidate = cwd / name
        if candidate.exists():
            return candidate
    return None
