"""Pure transformations over in-memory tag trees.

``strip_text`` removes a substring from every string reachable from a tree and
``validate_tags`` prunes fields left empty afterwards. Both return new trees and
never mutate their argument, so callers may keep the original for diffing.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Optional

from .models import TagChange, TagObserver, TagPath, TagTree

logger = logging.getLogger(__name__)


def is_list_of_records(value: Any) -> bool:
    """Return True when ``value`` is a list whose every element is a mapping.

    An empty list qualifies.
    """
    if not isinstance(value, (list, tuple)):
        return False
    return all(isinstance(item, Mapping) for item in value)


def sanitize(
    tree: Mapping[str, Any],
    target: str,
    *,
    compact_records: bool = False,
    observer: Optional[TagObserver] = None,
) -> TagTree:
    stripped = strip_text(tree, target, observer=observer)
    return validate_tags(stripped, compact_records=compact_records, observer=observer)


def strip_text(
    tree: Mapping[str, Any],
    target: str,
    *,
    observer: Optional[TagObserver] = None,
) -> TagTree:
    if not target:
        return copy.deepcopy(dict(tree))
    return _strip_mapping(tree, target, (), observer)


def _strip_mapping(
    tree: Mapping[str, Any], target: str, path: TagPath, observer: Optional[TagObserver]
) -> TagTree:
    return {
        key: _strip_value(value, target, path + (key,), observer)
        for key, value in tree.items()
    }


def _strip_value(value: Any, target: str, path: TagPath, observer: Optional[TagObserver]) -> Any:
    if isinstance(value, str):
        if target not in value:
            return value
        cleaned = _remove_all(value, target)
        _notify(observer, TagChange(path, "stripped", old=value, new=cleaned))
        return cleaned
    if isinstance(value, Mapping):
        return _strip_mapping(value, target, path, observer)
    if isinstance(value, (list, tuple)):
        return type(value)(
            _strip_value(item, target, path + (index,), observer)
            for index, item in enumerate(value)
        )
    return copy.deepcopy(value)


def _remove_all(value: str, target: str) -> str:
    # Removing one occurrence can join two fragments into a new one.
    while target in value:
        value = value.replace(target, "")
    return value


def validate_tags(
    tree: Mapping[str, Any],
    *,
    compact_records: bool = False,
    observer: Optional[TagObserver] = None,
) -> TagTree:
    """Drop empty fields, judging each nested mapping after its own children.

    A field is removed when its value is None, ``""``, an empty list, or a
    mapping that is empty once validated. Records inside lists are validated
    too, but the list keeps its length unless ``compact_records`` is set, in
    which case records that end up empty are dropped from lists of records.
    """
    return _validate_mapping(tree, (), compact_records, observer)


def _validate_mapping(
    tree: Mapping[str, Any],
    path: TagPath,
    compact_records: bool,
    observer: Optional[TagObserver],
) -> TagTree:
    result: TagTree = {}
    for key, value in tree.items():
        field_path = path + (key,)
        if _is_blank(value):
            _notify(observer, TagChange(field_path, "removed", old=value))
            continue
        if isinstance(value, Mapping):
            cleaned = _validate_mapping(value, field_path, compact_records, observer)
            if not cleaned:
                _notify(observer, TagChange(field_path, "removed", old=value))
                continue
            result[key] = cleaned
        elif isinstance(value, (list, tuple)):
            items = _validate_list(value, field_path, compact_records, observer)
            if not items:
                _notify(observer, TagChange(field_path, "removed", old=value))
                continue
            result[key] = items
        else:
            result[key] = copy.deepcopy(value)
    return result


def _validate_list(
    value: Any,
    path: TagPath,
    compact_records: bool,
    observer: Optional[TagObserver],
) -> Any:
    compact = compact_records and is_list_of_records(value)
    items = []
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            items.append(copy.deepcopy(item))
            continue
        cleaned = _validate_mapping(item, path + (index,), compact_records, observer)
        if compact and not cleaned:
            _notify(observer, TagChange(path + (index,), "removed", old=item))
            continue
        items.append(cleaned)
    return type(value)(items)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _notify(observer: Optional[TagObserver], change: TagChange) -> None:
    if change.action == "stripped":
        logger.debug("Stripped text from %s: %r -> %r", change.label, change.old, change.new)
    else:
        logger.debug("Removed empty tag %s", change.label)
    if observer is not None:
        observer(change)
