from __future__ import annotations

from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any

_MISSING = object()


def _split(path: str) -> list[str]:
    if not isinstance(path, str):
        raise TypeError(f"path must be a string, got {type(path).__name__}")
    if not path:
        raise ValueError("path cannot be empty")
    return path.split(".")


def _step(container: Any, key: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(key, _MISSING)
    if isinstance(container, Sequence) and not isinstance(container, (str, bytes)):
        if key.isdigit() and int(key) < len(container):
            return container[int(key)]
    return _MISSING


def get_path(tree: Any, path: str, default: Any = None) -> Any:
    """
    Read the value at a dotted path.

    Numeric segments index into lists. Missing segments, or segments that
    cross a scalar, return ``default``.

    Example:
        >>> get_path({"data": {"posts": [{"id": 1}]}}, "data.posts.0.id")
        1
    """
    current = tree
    for key in _split(path):
        current = _step(current, key)
        if current is _MISSING:
            return default
    return current


def set_path(tree: MutableMapping[str, Any], path: str, value: Any) -> None:
    """
    Write value at a dotted path, creating intermediate mappings as needed.

    Raises:
        TypeError: If an intermediate segment holds a scalar
    """
    keys = _split(path)
    current: Any = tree
    for key in keys[:-1]:
        nxt = _step(current, key)
        if nxt is _MISSING:
            if not isinstance(current, MutableMapping):
                raise TypeError(f"Cannot create {key!r} inside {type(current).__name__} at {path!r}")
            nxt = {}
            current[key] = nxt
        elif not isinstance(nxt, (MutableMapping, MutableSequence)):
            raise TypeError(f"Cannot descend into {type(nxt).__name__} at {key!r} of {path!r}")
        current = nxt

    last = keys[-1]
    if isinstance(current, MutableSequence):
        if not last.isdigit():
            raise TypeError(f"List segment {last!r} of {path!r} is not an index")
        current[int(last)] = value
    else:
        current[last] = value


def delete_path(tree: MutableMapping[str, Any], path: str) -> bool:
    """
    Remove the key at a dotted path. Returns False if nothing was there.
    """
    keys = _split(path)
    parent = get_path(tree, ".".join(keys[:-1])) if len(keys) > 1 else tree
    if isinstance(parent, MutableMapping) and keys[-1] in parent:
        del parent[keys[-1]]
        return True
    return False
