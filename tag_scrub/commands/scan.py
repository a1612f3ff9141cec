from __future__ import annotations

import json
from pathlib import Path

from ..config import Settings
from ..scanner import FolderScanner
from .output import error, ok


def run(settings: Settings, folder: Path, *, json_output: bool = False) -> bool:
    scanner = FolderScanner(settings.library)
    entries = scanner.scan(folder)
    if json_output:
        print(json.dumps([entry.to_record() for entry in entries], indent=2, ensure_ascii=False))
        return all(entry.ok for entry in entries)
    if not entries:
        print(f"No audio files found in {folder}")
        return True
    for entry in entries:
        if entry.ok:
            print(ok(entry.file, _describe(entry.metadata or {})))
        else:
            print(error(entry.file, entry.error))
    failed = sum(1 for entry in entries if not entry.ok)
    print(f"\nScanned {len(entries)} file(s), {failed} failed.")
    return failed == 0


def _describe(summary: dict) -> str:
    parts = [summary.get("artist"), summary.get("title"), summary.get("album")]
    text = " - ".join(str(part) for part in parts if part)
    return text or "no tags"
