"""Records describing how shorted positions have moved."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class OrderedTopMovers:
    """One rank of the biggest movers for each period."""

    order: int = 0
    day_code: str = ""
    day_change: float = 0.0
    week_code: str = ""
    week_change: float = 0.0
    month_code: str = ""
    month_change: float = 0.0
    year_code: str = ""
    year_change: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "dayCode": self.day_code,
            "dayChange": self.day_change,
            "weekCode": self.week_code,
            "weekChange": self.week_change,
            "monthCode": self.month_code,
            "monthChange": self.month_change,
            "yearCode": self.year_code,
            "yearChange": self.year_change,
        }


@dataclass
class CodedTopMovers:
    """The movement of one code over each period."""

    code: str = ""
    day_change: float = 0.0
    week_change: float = 0.0
    month_change: float = 0.0
    year_change: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "dayChange": self.day_change,
            "weekChange": self.week_change,
            "monthChange": self.month_change,
            "yearChange": self.year_change,
        }


@dataclass
class OrderedResults:
    """Ordered movers wrapped under a result key."""

    result: list[OrderedTopMovers] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"result": [item.to_dict() for item in self.result]}


@dataclass
class CodedResults:
    """Coded movers wrapped under a result key."""

    result: list[CodedTopMovers] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"result": [item.to_dict() for item in self.result]}