"""Detect library dependencies from import statements in source files."""

import logging
import re
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)

# Modules provided by the toolchain itself, never registered as libraries
SYSTEM_MODULES = frozenset({"Foundation", "Swift", "_Concurrency"})

_IMPORT_RE = re.compile(r"\bimport[ \t]+([A-Za-z_][A-Za-z0-9_]*)")


def scan_imports(text: str) -> list[str]:
    """Return imported module names in the order they appear in text."""
    return _IMPORT_RE.findall(text)


def detect_imports(
    sources: Iterable[Union[str, Path]],
    ignore: Iterable[str] = SYSTEM_MODULES,
) -> list[str]:
    """Collect the modules imported by a set of source files.

    Args:
        sources: Source files to scan; missing files are skipped
        ignore: Module names to leave out (toolchain modules)

    Returns:
        De-duplicated module names in first-seen order.
    """
    ignored = frozenset(ignore)
    seen: set[str] = set()
    imports: list[str] = []

    for source in sources:
        path = Path(source)
        if not path.is_file():
            logger.debug("Skipping import scan of missing file %s", path)
            continue
        text = path.read_text(encoding="utf-8", errors="replace")
        for module in scan_imports(text):
            if module in ignored or module in seen:
                continue
            seen.add(module)
            imports.append(module)

    return imports
