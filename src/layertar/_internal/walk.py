"""Deterministic filesystem walk."""

import os
import stat
from typing import Iterator, Tuple

from layertar.errors import AccessError


def walk(root: str) -> Iterator[Tuple[str, os.stat_result]]:
    """Yield ``(path, lstat result)`` for *root* and every node below it.

    Directories come before their children, children are visited in byte
    order of their names, and symlinks are never followed. Child paths are
    joined onto *root* as given, so a root of ``a/`` yields ``a/``, ``a/x``.
    Any lstat or listing failure raises AccessError.
    """
    try:
        st = os.lstat(root)
    except OSError as e:
        raise AccessError(root, e) from e
    yield from _walk(root, st)


def _walk(path: str, st: os.stat_result) -> Iterator[Tuple[str, os.stat_result]]:
    yield path, st
    if not stat.S_ISDIR(st.st_mode):
        return
    try:
        names = sorted(os.listdir(path), key=os.fsencode)
    except OSError as e:
        raise AccessError(path, e) from e
    for name in names:
        child = os.path.join(path, name)
        try:
            child_st = os.lstat(child)
        except OSError as e:
            raise AccessError(child, e) from e
        yield from _walk(child, child_st)
