from __future__ import annotations

import json
from pathlib import Path

from ..models import ReadError, to_jsonable
from ..tagging import TagCodec


def run(path: Path, *, json_output: bool = False, codec: TagCodec | None = None) -> bool:
    codec = codec or TagCodec()
    try:
        tree = codec.read(path)
    except ReadError as exc:
        print(f"Failed to read tags from {path.name}: {exc}")
        return False
    payload = to_jsonable(tree)
    if json_output:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return True
    print(path.name)
    for line in _render(payload, indent=1):
        print(line)
    return True


def _render(value: object, indent: int) -> list[str]:
    pad = "  " * indent
    lines: list[str] = []
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}{key}:")
                lines.extend(_render(item, indent + 1))
            else:
                lines.append(f"{pad}{key}: {item!r}")
    elif isinstance(value, list):
        for index, item in enumerate(value):
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}[{index}]")
                lines.extend(_render(item, indent + 1))
            else:
                lines.append(f"{pad}[{index}] {item!r}")
    return lines
