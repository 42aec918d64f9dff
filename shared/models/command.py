"""Data models for commands and their counter variables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Range of the INTEGER value column
VARIABLE_MIN = -(2**31)
VARIABLE_MAX = 2**31 - 1


@dataclass
class Variable:
    """Integer counter referenced as ``{{name}}`` in a command's content."""

    id: int
    command_id: int
    name: str
    value: int = 0


@dataclass
class Command:
    """Text command keyed by (channel_id, keyword)."""

    id: int
    channel_id: str
    keyword: str
    content: str
    enabled: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    variables: list[Variable] = field(default_factory=list)

    def variable_values(self) -> dict[str, int]:
        return {v.name: v.value for v in self.variables}
