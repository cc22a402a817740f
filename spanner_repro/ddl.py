"""
Schema text helpers.

Schema text is a `;`-separated list of DDL statements. The splitter is not
quote-aware: a `;` inside a string literal splits the statement in two. The
schemas fed to it never contain one.
"""

from __future__ import annotations

from pathlib import Path
from typing import List


def parse_ddl(data: str) -> List[str]:
    """Split `data` on ';', strip each piece and drop the empty ones."""
    return [statement.strip() for statement in data.split(";") if statement.strip()]


def load_ddl_file(path: Path | str) -> List[str]:
    return parse_ddl(Path(path).read_text(encoding="utf-8"))


__all__ = ["load_ddl_file", "parse_ddl"]
