"""Pytest configuration for tests.

No sys.path hacks - tests should import from the installed layertar package.
"""

import os

import pytest


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


def _write(path, content: bytes, mode: int) -> None:
    path.write_bytes(content)
    os.chmod(path, mode)


@pytest.fixture
def layer_tree(tmp_path, monkeypatch):
    """Two plain files ``a/x`` and ``a/y``; cwd is the tree root.

    Relative paths are used so archive entry names are stable across
    temporary directories.
    """
    a = tmp_path / "a"
    a.mkdir()
    os.chmod(a, 0o755)
    _write(a / "x", b"hi", 0o644)
    _write(a / "y", b"yo", 0o755)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def write_file():
    """Create a file with the given content and mode, creating parents."""
    def _make(path, content: bytes = b"", mode: int = 0o644):
        path.parent.mkdir(parents=True, exist_ok=True)
        _write(path, content, mode)
        return path
    return _make
