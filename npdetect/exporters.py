"""Registry of pluggable exporters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

__all__ = [
    "ExporterHandler",
    "ExporterRegistry",
    "UnknownExporterError",
    "register",
    "get_exporter_names",
    "get_exporter_handler",
    "new_exporters",
]


class UnknownExporterError(LookupError):
    """Raised when no handler is registered for an exporter type."""


@dataclass
class ExporterHandler:
    """Factory for an exporter together with its command-line options."""

    create_exporter: Callable[[Any], Any]
    options: Any = None


class ExporterRegistry:
    """Maps exporter type names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, ExporterHandler] = {}

    def register(self, exporter_type: str, handler: ExporterHandler) -> None:
        """Register a handler, replacing any earlier one of the same type."""
        self._handlers[exporter_type] = handler

    def names(self) -> list[str]:
        """Return all registered exporter types."""
        return list(self._handlers)

    def handler(self, exporter_type: str) -> ExporterHandler:
        """Return the handler for a type, raising if none is registered."""
        try:
            return self._handlers[exporter_type]
        except KeyError:
            raise UnknownExporterError(
                f"Exporter handler for {exporter_type} does not exist"
            ) from None

    def create_exporters(self) -> list[Any]:
        """Create every exporter whose factory returns one."""
        exporters = []
        for handler in self._handlers.values():
            exporter = handler.create_exporter(handler.options)
            if exporter is not None:
                exporters.append(exporter)
        return exporters

    def clear(self) -> None:
        """Remove every registered handler."""
        self._handlers.clear()


_default_registry = ExporterRegistry()


def register(exporter_type: str, handler: ExporterHandler) -> None:
    """Register a handler in the default registry."""
    _default_registry.register(exporter_type, handler)


def get_exporter_names() -> list[str]:
    """Return all exporter types in the default registry."""
    return _default_registry.names()


def get_exporter_handler(exporter_type: str) -> ExporterHandler:
    """Return a handler from the default registry."""
    return _default_registry.handler(exporter_type)


def new_exporters() -> list[Any]:
    """Create all exporters from the default registry."""
    return _default_registry.create_exporters()