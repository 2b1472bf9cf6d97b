"""Pytest configuration and shared fixtures for libgraph tests.

Provides an empty registry, an artifact layout inside tmp_path, and a
helper that creates a library source directory and (optionally) its build
artifacts on disk.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from libgraph.registry import ArtifactLayout, LibraryUnit, Registry


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def layout(tmp_path: Path) -> ArtifactLayout:
    return ArtifactLayout(tmp_path / "build")


def build_artifacts(layout: ArtifactLayout, name: str) -> None:
    """Write empty object and interface files for a unit, as the compiler would."""
    artifacts = layout.for_unit(name)
    layout.ensure_dirs(name)
    artifacts.object_file.write_bytes(b"")
    artifacts.interface_file.write_bytes(b"")


@pytest.fixture
def build(layout: ArtifactLayout) -> Callable[[str], None]:
    """Simulate the compiler finishing a unit."""
    return lambda name: build_artifacts(layout, name)


@pytest.fixture
def add_unit(registry: Registry, layout: ArtifactLayout, tmp_path: Path) -> Callable[..., LibraryUnit]:
    """Register a unit whose sources live at tmp_path/<subdir>.

    Usage:
        add_unit("Util", "mods/util", deps=["Core"], built=True)
    """

    def _add(name: str, subdir: Optional[str] = None, deps: Sequence[str] = (), built: bool = True) -> LibraryUnit:
        source_root = tmp_path / (subdir if subdir is not None else name.lower())
        source_root.mkdir(parents=True, exist_ok=True)
        if built:
            build_artifacts(layout, name)
        return registry.register(name, source_root, deps, artifacts=layout.for_unit(name))

    return _add
