from __future__ import annotations

import asyncio
from pathlib import Path

from ..cleaner import TagCleaner
from ..config import Settings
from ..scanner import FolderScanner
from .output import changed, removed


def run(
    settings: Settings,
    target: Path,
    text: str,
    *,
    verbose_changes: bool = False,
) -> bool:
    if target.is_dir():
        paths = FolderScanner(settings.library).list_audio_files(target)
    else:
        paths = [target]
    if not paths:
        print(f"No audio files found in {target}")
        return True
    cleaner = TagCleaner(
        compact_records=settings.cleaning.compact_records,
        dry_run=settings.cleaning.dry_run,
    )
    results = asyncio.run(
        cleaner.clean_many(paths, text, concurrency=settings.cleaning.worker_concurrency)
    )
    for result in results:
        print(result.message)
        if verbose_changes:
            for change in result.changes:
                if change.action == "stripped":
                    print("  " + changed(change.label, f"{change.old!r} -> {change.new!r}"))
                else:
                    print("  " + removed(change.label))
    failed = sum(1 for result in results if not result.ok)
    suffix = " (dry-run)" if settings.cleaning.dry_run else ""
    print(f"\nProcessed {len(results)} file(s){suffix}, {failed} failed.")
    return failed == 0

