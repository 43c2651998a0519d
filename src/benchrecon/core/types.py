"""Type aliases used across BenchRecon."""

from __future__ import annotations

from typing import Any

RawRow = dict[str, Any]
GroupKey = tuple[str, str, str, str]
