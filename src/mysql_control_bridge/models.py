"""Result models passed from the dispatcher to the formatting layer."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ResultSection:
    """One titled block of rows (or SQL text) within a result."""

    title: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    sql: Optional[str] = None


@dataclass
class OperationResult:
    """Outcome of one tool invocation."""

    operation: str
    host: Optional[str] = None
    database: Optional[str] = None
    sections: list[ResultSection] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def row_count(self) -> int:
        return sum(len(section.rows) for section in self.sections)
