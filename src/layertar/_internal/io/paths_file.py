"""Paths-file I/O helpers (internal)."""

from pathlib import Path
from typing import Union

from layertar.kernel.paths import Paths


def load_paths_from_path(path: Union[str, Path]) -> Paths:
    """Load an ordered path list from a JSON paths file."""
    paths_file = Path(path)
    data = paths_file.read_bytes()
    return Paths.from_json_bytes(data)
