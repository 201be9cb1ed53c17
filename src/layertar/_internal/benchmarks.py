"""Performance sentinel benchmarks for archive building."""

from __future__ import annotations

import os
from pathlib import Path
from time import perf_counter
from typing import Tuple

from layertar.api import sum_paths
from layertar.kernel.digest import LayerDigest


def _budget_from_env(var_name: str, default_ms: float) -> float:
    raw = os.getenv(var_name)
    if not raw:
        return default_ms
    try:
        return float(raw)
    except ValueError:
        return default_ms


MAX_MANY_SMALL_FILES_MS = _budget_from_env("LAYERTAR_MAX_MANY_SMALL_FILES_MS", 2000.0)
MAX_LARGE_FILE_MS = _budget_from_env("LAYERTAR_MAX_LARGE_FILE_MS", 2000.0)


def build_many_small_files(root: Path, dirs: int = 20, files_per_dir: int = 100) -> Path:
    """Create a tree of ``dirs * files_per_dir`` small files under *root*."""
    for d in range(dirs):
        sub = root / f"d{d:03d}"
        sub.mkdir(parents=True, exist_ok=True)
        for i in range(files_per_dir):
            (sub / f"f{i:04d}").write_bytes(f"{d}:{i}\n".encode("ascii"))
    return root


def build_large_file(root: Path, size_mb: int = 64) -> Path:
    """Create a single file of *size_mb* MiB under *root*."""
    root.mkdir(parents=True, exist_ok=True)
    chunk = bytes(range(256)) * 4096
    with open(root / "blob.bin", "wb") as f:
        for _ in range(size_mb):
            f.write(chunk)
    return root


def run_sentinel(root: Path) -> Tuple[float, LayerDigest]:
    """Sum the archive of *root* and return elapsed ms plus the result."""
    start = perf_counter()
    result = sum_paths([str(root)])
    elapsed_ms = (perf_counter() - start) * 1000.0
    return elapsed_ms, result
