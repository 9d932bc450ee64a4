"""Core problem, condition and custom plugin rule types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Any, Mapping

__all__ = [
    "Status",
    "ProblemType",
    "ConditionStatus",
    "Severity",
    "Condition",
    "Event",
    "ProblemStatus",
    "CustomRule",
    "Result",
]


class Status(IntEnum):
    """Exit status of a custom plugin."""

    OK = 0
    NON_OK = 1
    UNKNOWN = 2


class ProblemType(str, Enum):
    """Whether a problem is temporary (an event) or permanent (a condition)."""

    TEMPORARY = "temporary"
    PERMANENT = "permanent"


class ConditionStatus(str, Enum):
    """Status of a node condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class Severity(str, Enum):
    """Severity of an event."""

    INFO = "info"
    WARN = "warn"


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    return datetime.fromisoformat(text)


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


@dataclass
class Condition:
    """A node condition as reported by a problem daemon."""

    type: str
    status: ConditionStatus = ConditionStatus.FALSE
    transition: datetime | None = None
    reason: str = ""
    message: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        """Build a condition from its JSON form."""
        status = data.get("status") or ConditionStatus.FALSE
        return cls(
            type=_string(data, "type"),
            status=ConditionStatus(status),
            transition=_parse_time(data.get("transition")),
            reason=_string(data, "reason"),
            message=_string(data, "message"),
        )


@dataclass
class Event:
    """A single problem event."""

    severity: Severity
    timestamp: datetime
    reason: str
    message: str


@dataclass
class ProblemStatus:
    """Status reported by a problem daemon: its events and conditions."""

    source: str
    events: list[Event] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class CustomRule:
    """How a custom plugin is invoked and how its result is interpreted."""

    path: str
    type: ProblemType = ProblemType.TEMPORARY
    condition: str = ""
    reason: str = ""
    args: list[str] = field(default_factory=list)
    timeout_string: str | None = None
    timeout: timedelta | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomRule":
        """Build a rule from its JSON form; the timeout string is left unparsed."""
        raw_type = data.get("type") or ProblemType.TEMPORARY
        try:
            problem_type = ProblemType(raw_type)
        except ValueError:
            raise ValueError(f"unknown problem type {raw_type!r}") from None
        args = data.get("args") or []
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise ValueError(f"field 'args' must be a list of strings, got {args!r}")
        timeout_string = data.get("timeout")
        if timeout_string is not None and not isinstance(timeout_string, str):
            raise ValueError(f"field 'timeout' must be a string, got {timeout_string!r}")
        return cls(
            path=_string(data, "path"),
            type=problem_type,
            condition=_string(data, "condition"),
            reason=_string(data, "reason"),
            args=list(args),
            timeout_string=timeout_string,
        )


@dataclass
class Result:
    """The outcome of running one custom plugin rule."""

    rule: CustomRule
    exit_status: Status
    message: str