from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .commands import scan as cmd_scan
from .commands import show as cmd_show
from .commands import strip as cmd_strip
from .config import Settings

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ShortPathFormatter(logging.Formatter):
    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return self._shorten(message)


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def configure_logging(level: str, roots: list[Path], warn_log_path: Path) -> WarningBufferHandler:
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(warn_buffer)

    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8", delay=True)
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(file_handler)

    logging.getLogger("mutagen").setLevel(logging.WARNING)
    return warn_buffer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Strip unwanted text from audio file tags")
    parser.add_argument("--config", type=Path, help="Path to tag-scrub.yaml")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    scan_parser = subparsers.add_parser(
        "scan", help="List audio files in a folder with a summary of their tags"
    )
    scan_parser.add_argument("folder", type=Path)
    scan_parser.add_argument(
        "--json", action="store_true", help="Emit machine-readable JSON to stdout"
    )
    show_parser = subparsers.add_parser("show", help="Print the full tag tree of a file")
    show_parser.add_argument("file", type=Path)
    show_parser.add_argument(
        "--json", action="store_true", help="Emit machine-readable JSON to stdout"
    )
    strip_parser = subparsers.add_parser(
        "strip", help="Remove a text fragment from every tag of a file or folder"
    )
    strip_parser.add_argument("target", type=Path, help="Audio file or folder")
    strip_parser.add_argument("--text", required=True, help="Text to remove")
    strip_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what would change",
    )
    strip_parser.add_argument(
        "--compact-records",
        action="store_true",
        help="Also drop records (comments, pictures, ...) left empty inside tag lists",
    )
    strip_parser.add_argument(
        "--verbose-changes",
        action="store_true",
        help="List every changed or removed tag",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.resolve(args.config)
    except FileNotFoundError as exc:
        parser.error(str(exc))
    if getattr(args, "dry_run", False):
        settings.cleaning.dry_run = True
    if getattr(args, "compact_records", False):
        settings.cleaning.compact_records = True

    target = getattr(args, "folder", None) or getattr(args, "file", None) or getattr(args, "target")
    root = target.resolve()
    display_roots = [root if root.is_dir() else root.parent]
    warn_log_path = Path.cwd() / "tag-scrub-warnings.log"
    warn_buffer = configure_logging(args.log_level, display_roots, warn_log_path)

    ok = True
    try:
        match args.command:
            case "scan":
                try:
                    ok = cmd_scan.run(settings, args.folder, json_output=args.json)
                except FileNotFoundError as exc:
                    parser.error(str(exc))
            case "show":
                ok = cmd_show.run(args.file, json_output=args.json)
            case "strip":
                if not args.target.exists():
                    parser.error(f"No such file or folder: {args.target}")
                ok = cmd_strip.run(
                    settings,
                    args.target,
                    args.text,
                    verbose_changes=args.verbose_changes,
                )
            case _:
                parser.error("Unknown command")
    finally:
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")
    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
