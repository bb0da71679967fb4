# tapegrad/core/values.py
"""
Value model.

A Value is one of:
    - a plain scalar (int, float, bool, str, None, ...), passed through untouched
    - a numeric numpy array ("tensor"), the only thing that gets differentiated
    - a dict / list / tuple of Values, nested to any depth

The helpers below walk that structure without caring what the leaves are,
so the same walkers serve root creation, gradient extraction and the
finite-difference checker.
"""
from __future__ import annotations
import numpy as np
from typing import Any, Callable, Iterator, Tuple

Path = Tuple[Any, ...]


def is_tensor(x: Any) -> bool:
    """True for numpy arrays with a numeric dtype (bool/object arrays are constants)."""
    return isinstance(x, np.ndarray) and np.issubdtype(x.dtype, np.number)


def is_container(x: Any) -> bool:
    return isinstance(x, (dict, list, tuple))


def zeros_like(x: Any):
    """All-zero gradient for `x`: same shape, float dtype for integer arrays."""
    if isinstance(x, np.ndarray):
        if np.issubdtype(x.dtype, np.inexact):
            return np.zeros_like(x)
        return np.zeros(x.shape, dtype=float)
    return 0.0


def ones_like(x: Any):
    """Multiplicative identity shaped like `x` (the seed of a backward sweep)."""
    if isinstance(x, np.ndarray):
        if np.issubdtype(x.dtype, np.inexact):
            return np.ones_like(x)
        return np.ones(x.shape, dtype=float)
    return 1.0


def _rebuild(tree, items):
    """Rebuild a list/tuple of the same type as `tree` (namedtuples included)."""
    if isinstance(tree, list):
        return list(items)
    if hasattr(tree, "_fields"):
        return type(tree)(*items)
    return tuple(items)


def map_structure(fn: Callable[[Any], Any], tree: Any) -> Any:
    """
    Apply `fn` to every non-container leaf of `tree` and return a new
    structure of the same shape. dict key order is preserved.
    """
    if isinstance(tree, dict):
        return {k: map_structure(fn, v) for k, v in tree.items()}
    if isinstance(tree, (list, tuple)):
        return _rebuild(tree, [map_structure(fn, v) for v in tree])
    return fn(tree)


def leaf_paths(tree: Any, path: Path = ()) -> Iterator[Tuple[Path, Any]]:
    """Yield `(path, leaf)` for every leaf, depth-first in container order."""
    if isinstance(tree, dict):
        for k, v in tree.items():
            yield from leaf_paths(v, path + (k,))
    elif isinstance(tree, (list, tuple)):
        for i, v in enumerate(tree):
            yield from leaf_paths(v, path + (i,))
    else:
        yield path, tree


def get_path(tree: Any, path: Path) -> Any:
    for key in path:
        tree = tree[key]
    return tree


def replace_path(tree: Any, path: Path, value: Any) -> Any:
    """
    Return a copy of `tree` with the leaf at `path` replaced by `value`.
    Only the containers along `path` are copied; siblings are shared.
    """
    if not path:
        return value
    key, rest = path[0], path[1:]
    if isinstance(tree, dict):
        out = dict(tree)
        out[key] = replace_path(tree[key], rest, value)
        return out
    items = list(tree)
    items[key] = replace_path(tree[key], rest, value)
    return _rebuild(tree, items)
