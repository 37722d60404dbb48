"""Dotted-path helpers for camelCase ticket documents"""
import copy
from typing import Any, Dict, Optional

_MISSING = object()


def get_path(doc: Optional[Dict[str, Any]], path: str, default: Any = None) -> Any:
    """
    Read a dotted path such as ``chemicalProperties.casNumber``

    Returns ``default`` when any segment is missing or not a dict.
    """
    current: Any = doc
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(key, _MISSING)
        if current is _MISSING:
            return default
    return current


def set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate dicts"""
    keys = path.split(".")
    current = doc
    for key in keys[:-1]:
        nxt = current.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            current[key] = nxt
        current = nxt
    current[keys[-1]] = value


def delete_path(doc: Dict[str, Any], path: str) -> None:
    keys = path.split(".")
    current: Any = doc
    for key in keys[:-1]:
        current = current.get(key) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(keys[-1], None)


def is_empty(value: Any) -> bool:
    """None, blank string, empty list and empty dict all count as empty"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def right_merge(base: Optional[Dict[str, Any]], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Shallow merge where ``override`` wins on every key it carries.

    Keys present in ``override`` win even when their value is an empty
    string or list; absent keys and ``None`` values fall through to ``base``.
    """
    merged = copy.deepcopy(base) if base else {}
    for key, value in (override or {}).items():
        if value is None and key in merged:
            continue
        merged[key] = copy.deepcopy(value)
    return merged
