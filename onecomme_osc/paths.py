"""
Dotted-path access for nested message records.

Both the condition evaluator (reading) and the field projector (writing)
walk paths through these two functions, so they always agree on what
"user.profile.name" means.
"""

from typing import Any, Dict, List, Mapping, Sequence


class _Missing:
    """Sentinel for a path that does not resolve (distinct from JSON null)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Missing, ())


MISSING = _Missing()


def split_path(path: str) -> List[str]:
    return str(path).split(".")


def get_path(record: Any, path: str) -> Any:
    """
    Resolve a dotted path against a nested record.

    Args:
        record: Mapping (or sequence) to walk
        path: Dotted path, e.g. "colors.headerTextColor.r"

    Returns:
        The value at the path, or MISSING if any segment is absent or the
        current value cannot be indexed. Never raises.
    """
    current = record
    for part in split_path(path):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not part.isdigit() or int(part) >= len(current):
                return MISSING
            current = current[int(part)]
        else:
            return MISSING
    return current


def set_path(target: Dict[str, Any], path: str, value: Any) -> None:
    """
    Write value at a dotted path, creating intermediate dicts as needed.

    A non-dict value sitting where an intermediate dict is required is
    replaced.
    """
    parts = split_path(path)
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value
