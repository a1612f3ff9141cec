from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import mutagen
from mutagen import MutagenError

from .config import LibrarySettings
from .models import ScanEntry

logger = logging.getLogger(__name__)

SUMMARY_KEYS = {
    "title": "title",
    "artist": "artist",
    "album": "album",
    "albumartist": "album_artist",
    "genre": "genre",
    "date": "date",
    "tracknumber": "track_number",
    "discnumber": "disc_number",
}


class FolderScanner:
    """Lists the audio files of a folder and summarises their metadata."""

    def __init__(self, settings: LibrarySettings) -> None:
        self.settings = settings
        self._exts = {ext.lower() for ext in self.settings.include_extensions}

    def list_audio_files(self, folder: Path) -> List[Path]:
        if not folder.is_dir():
            raise FileNotFoundError(f"Folder not found: {folder}")
        candidates = folder.rglob("*") if self.settings.recursive else folder.iterdir()
        return sorted(
            path for path in candidates if path.is_file() and self._should_include(path)
        )

    def _should_include(self, path: Path) -> bool:
        if path.suffix.lower() not in self._exts:
            return False
        rel = str(path)
        for pattern in self.settings.exclude_patterns:
            if fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(path.name, pattern):
                return False
        return True

    def scan(self, folder: Path) -> List[ScanEntry]:
        entries: List[ScanEntry] = []
        for path in self.list_audio_files(folder):
            name = str(path.relative_to(folder))
            try:
                entries.append(ScanEntry(file=name, metadata=self.summarize(path)))
            except (MutagenError, OSError, ValueError) as exc:
                logger.warning("Failed to parse %s: %s", path, exc)
                entries.append(ScanEntry(file=name, error=str(exc) or exc.__class__.__name__))
        return entries

    def summarize(self, path: Path) -> Dict[str, Any]:
        audio = mutagen.File(path, easy=True)
        if audio is None:
            raise ValueError(f"Unrecognised audio format: {path.name}")
        summary: Dict[str, Any] = {}
        tags = audio.tags or {}
        for source, target in SUMMARY_KEYS.items():
            value = _first(tags.get(source))
            if value is not None:
                summary[target] = value
        info = getattr(audio, "info", None)
        length = getattr(info, "length", None)
        if length:
            summary["duration_seconds"] = round(float(length), 2)
        bitrate = getattr(info, "bitrate", None)
        if bitrate:
            summary["bitrate"] = int(bitrate)
        return summary


def _first(values: Any) -> Optional[str]:
    if not values:
        return None
    if isinstance(values, (list, tuple)):
        return str(values[0])
    return str(values)
