from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .models import CleanResult, ReadError, TagChange, TagObserver, WriteError
from .sanitize import sanitize
from .tagging import TagCodec

logger = logging.getLogger(__name__)


class TagCleaner:
    """Runs one read, strip, validate and write cycle per file."""

    def __init__(
        self,
        codec: Optional[TagCodec] = None,
        *,
        compact_records: bool = False,
        dry_run: bool = False,
        observer: Optional[TagObserver] = None,
    ) -> None:
        self.codec = codec or TagCodec()
        self.compact_records = compact_records
        self.dry_run = dry_run
        self.observer = observer

    def clean(self, path: Path, text: str) -> CleanResult:
        name = path.name
        try:
            original = self.codec.read(path)
        except ReadError as exc:
            logger.warning("Failed to read tags from %s: %s", path, exc)
            return CleanResult(path=path, ok=False, message=f"Failed to read tags from {name}")

        changes: List[TagChange] = []

        def record(change: TagChange) -> None:
            changes.append(change)
            if self.observer is not None:
                self.observer(change)

        cleaned = sanitize(original, text, compact_records=self.compact_records, observer=record)
        if not any(change.action == "stripped" for change in changes):
            logger.info("Nothing to change in %s", path)
            return CleanResult(path=path, ok=True, message=f"Nothing to change in {name}")
        if self.dry_run:
            logger.info("[dry-run] Would update %d tag(s) in %s", len(changes), path)
            return CleanResult(
                path=path,
                ok=True,
                message=f'[dry-run] Would remove "{text}" from {name}',
                changes=changes,
            )
        try:
            self.codec.write(path, cleaned)
        except WriteError as exc:
            logger.warning("Failed to write tags to %s: %s", path, exc)
            return CleanResult(
                path=path, ok=False, message=f"Failed to update {name}", changes=changes
            )
        logger.info("Updated %d tag(s) in %s", len(changes), path)
        return CleanResult(
            path=path,
            ok=True,
            message=f'Removed "{text}" from {name}',
            changes=changes,
            written=True,
        )

    async def clean_many(
        self, paths: Sequence[Path], text: str, *, concurrency: int = 4
    ) -> List[CleanResult]:
        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(len(paths)):
            queue.put_nowait(index)
        results: List[Optional[CleanResult]] = [None] * len(paths)
        loop = asyncio.get_running_loop()

        async def worker(worker_id: int) -> None:
            while True:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                path = paths[index]
                try:
                    results[index] = await loop.run_in_executor(None, self.clean, path, text)
                except Exception:  # pragma: no cover - logged and reported per file
                    logger.exception("Worker %s failed to process %s", worker_id, path)
                    results[index] = CleanResult(
                        path=path, ok=False, message=f"Failed to update {path.name}"
                    )
                finally:
                    queue.task_done()

        workers = [asyncio.create_task(worker(i)) for i in range(max(1, concurrency))]
        await asyncio.gather(*workers)
        return [result for result in results if result is not None]


def clean_file(
    path: Path,
    text: str,
    *,
    codec: Optional[TagCodec] = None,
    compact_records: bool = False,
    observer: Optional[TagObserver] = None,
) -> str:
    cleaner = TagCleaner(codec, compact_records=compact_records, observer=observer)
    return cleaner.clean(Path(path), text).message


def clean_files(
    paths: Sequence[Path],
    text: str,
    *,
    concurrency: int = 4,
    codec: Optional[TagCodec] = None,
    compact_records: bool = False,
    dry_run: bool = False,
) -> List[CleanResult]:
    cleaner = TagCleaner(codec, compact_records=compact_records, dry_run=dry_run)
    return asyncio.run(cleaner.clean_many([Path(p) for p in paths], text, concurrency=concurrency))
