"""Pure helpers for nested translation trees.

Translation trees are plain JSON-like mappings. Every helper here returns new
containers instead of mutating its inputs, so snapshots handed to readers stay
valid after the owning store moves on.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

Tree = dict[str, typ.Any]


def is_branch(value: object) -> bool:
    """Return ``True`` for mapping values that merging and flattening recurse into."""
    return isinstance(value, cabc.Mapping)


def deep_merge(base: cabc.Mapping[str, typ.Any], override: cabc.Mapping[str, typ.Any]) -> Tree:
    """Merge ``override`` onto ``base``.

    Mappings are merged recursively; lists and scalars from ``override``
    replace whatever ``base`` holds at the same key.

    Examples
    --------
    >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 9}})
    {'a': {'x': 1, 'y': 9}}
    >>> deep_merge({"tags": [1, 2]}, {"tags": [3]})
    {'tags': [3]}
    """
    result: Tree = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if is_branch(value):
            result[key] = deep_merge(current if is_branch(current) else {}, value)
        else:
            result[key] = value
    return result


def flatten_paths(
    tree: cabc.Mapping[str, typ.Any], prefix: tuple[str, ...] = ()
) -> cabc.Iterator[tuple[str, ...]]:
    """Yield the path of every leaf in ``tree``; lists count as leaves."""
    for key, value in tree.items():
        path = (*prefix, str(key))
        if is_branch(value):
            yield from flatten_paths(value, path)
        else:
            yield path


def get_path(
    tree: cabc.Mapping[str, typ.Any],
    path: cabc.Sequence[str],
    default: typ.Any = None,
) -> typ.Any:
    """Return the value stored at ``path`` or ``default`` when any segment is missing."""
    node: typ.Any = tree
    for segment in path:
        if not is_branch(node) or segment not in node:
            return default
        node = node[segment]
    return node


def set_path(
    tree: cabc.Mapping[str, typ.Any], path: cabc.Sequence[str], value: typ.Any
) -> Tree:
    """Return a copy of ``tree`` with ``value`` stored at ``path``.

    Missing intermediate mappings are created; a non-mapping value sitting on
    the way is replaced by a new mapping.
    """
    if not path:
        msg = "Translation path must not be empty."
        raise ValueError(msg)
    head, *rest = path
    result: Tree = dict(tree)
    if not rest:
        result[head] = value
        return result
    child = result.get(head)
    result[head] = set_path(child if is_branch(child) else {}, rest, value)
    return result


def delete_path(tree: cabc.Mapping[str, typ.Any], path: cabc.Sequence[str]) -> Tree:
    """Return a copy of ``tree`` without the entry at ``path``.

    Mappings left empty by the deletion are pruned as well. Deleting a path
    that does not exist returns an equal copy.
    """
    if not path:
        msg = "Translation path must not be empty."
        raise ValueError(msg)
    head, *rest = path
    if head not in tree:
        return dict(tree)
    result: Tree = dict(tree)
    if not rest:
        del result[head]
        return result
    child = result[head]
    if not is_branch(child):
        return result
    pruned = delete_path(child, rest)
    if pruned:
        result[head] = pruned
    else:
        del result[head]
    return result


__all__ = [
    "Tree",
    "deep_merge",
    "delete_path",
    "flatten_paths",
    "get_path",
    "is_branch",
    "set_path",
]
