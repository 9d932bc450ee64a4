"""Node condition types, patch generation and an in-memory problem client."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Sequence
from urllib.parse import parse_qs, urlsplit

from npdetect.problem import Condition

__all__ = [
    "NodeCondition",
    "ObjectReference",
    "ConfigOverrides",
    "RecordedEvent",
    "FakeProblemClient",
    "to_node_condition",
    "generate_patch",
    "get_node_ref",
    "get_config_overrides",
]

API_VERSION = "v1"

_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid boolean value {text!r}")


def _format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    utc = value.astimezone(timezone.utc).replace(microsecond=0)
    return utc.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class NodeCondition:
    """A node condition in the form the API server stores it."""

    type: str
    status: str
    last_heartbeat_time: datetime | None = None
    last_transition_time: datetime | None = None
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, with empty reason and message left out."""
        data: dict[str, Any] = {
            "type": self.type,
            "status": self.status,
            "lastHeartbeatTime": _format_time(self.last_heartbeat_time),
            "lastTransitionTime": _format_time(self.last_transition_time),
        }
        if self.reason:
            data["reason"] = self.reason
        if self.message:
            data["message"] = self.message
        return data


@dataclass(frozen=True)
class ObjectReference:
    """Reference to the object events are recorded against."""

    kind: str
    name: str
    uid: str
    namespace: str = ""


@dataclass
class ConfigOverrides:
    """Cluster settings taken from an API server override URI."""

    server: str = ""
    insecure_skip_tls_verify: bool = False


@dataclass(frozen=True)
class RecordedEvent:
    """An event reported through a problem client."""

    event_type: str
    source: str
    reason: str
    message: str

    def __str__(self) -> str:
        return f"{self.event_type} {self.reason} {self.message}"


def to_node_condition(condition: Condition) -> NodeCondition:
    """Convert a problem daemon condition to its API form."""
    return NodeCondition(
        type=condition.type,
        status=condition.status.value,
        last_transition_time=condition.transition,
        reason=condition.reason,
        message=condition.message,
    )


def generate_patch(conditions: Sequence[NodeCondition]) -> bytes:
    """Build the strategic merge patch that sets the node's status conditions."""
    raw = json.dumps(
        [c.to_dict() for c in conditions], separators=(",", ":"), ensure_ascii=False
    )
    return f'{{"status":{{"conditions":{raw}}}}}'.encode()


def get_node_ref(namespace: str, node_name: str) -> ObjectReference:
    """Return the reference to the node, used as the subject of events."""
    return ObjectReference(kind="Node", name=node_name, uid=node_name, namespace=namespace)


def get_config_overrides(uri: str) -> ConfigOverrides:
    """Read the server address and the ``insecure`` query option from a URI."""
    parts = urlsplit(uri)
    overrides = ConfigOverrides()
    if parts.scheme and parts.netloc:
        overrides.server = f"{parts.scheme}://{parts.netloc}"
    options = parse_qs(parts.query, keep_blank_values=True)
    if options.get("insecure"):
        overrides.insecure_skip_tls_verify = _parse_bool(options["insecure"][0])
    return overrides


@dataclass
class FakeProblemClient:
    """A problem client that keeps conditions and events in memory."""

    conditions: dict[str, NodeCondition] = field(default_factory=dict)
    events: list[RecordedEvent] = field(default_factory=list)
    _errors: dict[str, BaseException] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def inject_error(self, function: str, error: BaseException) -> None:
        """Make the named method raise ``error`` from now on."""
        with self._lock:
            self._errors[function] = error

    def assert_conditions(self, expected: Sequence[NodeCondition]) -> None:
        """Raise AssertionError unless the stored conditions match ``expected``."""
        wanted = {c.type: c for c in expected}
        with self._lock:
            actual = dict(self.conditions)
        if wanted != actual:
            raise AssertionError(f"expected {wanted!r}, got {actual!r}")

    def set_conditions(self, conditions: Sequence[NodeCondition]) -> None:
        """Store the conditions, replacing earlier ones of the same type."""
        with self._lock:
            error = self._errors.get("set_conditions")
            if error is not None:
                raise error
            for condition in conditions:
                self.conditions[condition.type] = replace(condition)

    def get_conditions(self, condition_types: Sequence[str]) -> list[NodeCondition]:
        """Return copies of the stored conditions of the given types."""
        with self._lock:
            error = self._errors.get("get_conditions")
            if error is not None:
                raise error
            return [
                replace(self.conditions[t])
                for t in condition_types
                if t in self.conditions
            ]

    def eventf(
        self, event_type: str, source: str, reason: str, message_fmt: str, *args: Any
    ) -> RecordedEvent:
        """Record an event whose message is ``message_fmt`` formatted with ``args``."""
        message = message_fmt % args if args else message_fmt
        event = RecordedEvent(event_type, source, reason, message)
        with self._lock:
            self.events.append(event)
        return event

    def get_node(self) -> Any:
        """Raise LookupError: the in-memory client holds no node object."""
        raise LookupError("the fake problem client holds no node object")