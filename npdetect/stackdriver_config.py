"""Configuration of the Stackdriver exporter and its GCE metadata."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping

from npdetect.duration import format_duration

__all__ = ["GCEMetadata", "StackdriverExporterConfig", "parse_stackdriver_config"]

DEFAULT_EXPORT_PERIOD = format_duration(timedelta(seconds=60))
DEFAULT_ENDPOINT = "monitoring.googleapis.com:443"
DEFAULT_METADATA_FETCH_TIMEOUT = format_duration(timedelta(seconds=600))
DEFAULT_METADATA_FETCH_INTERVAL = format_duration(timedelta(seconds=10))


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


@dataclass
class GCEMetadata:
    """Identity of the GCE instance metrics are reported for."""

    project_id: str = ""
    zone: str = ""
    instance_id: str = ""
    instance_name: str = ""

    def has_missing_field(self) -> bool:
        """Return True if any of the fields is empty."""
        return not all((self.project_id, self.zone, self.instance_id, self.instance_name))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GCEMetadata":
        """Build metadata from its JSON form."""
        return cls(
            project_id=_string(data, "projectID"),
            zone=_string(data, "zone"),
            instance_id=_string(data, "instanceID"),
            instance_name=_string(data, "instanceName"),
        )


@dataclass
class StackdriverExporterConfig:
    """Settings of the Stackdriver exporter."""

    export_period: str = ""
    api_endpoint: str = ""
    gce_metadata: GCEMetadata = field(default_factory=GCEMetadata)
    metadata_fetch_timeout: str = ""
    metadata_fetch_interval: str = ""
    panic_on_metadata_fetch_failure: bool = False
    custom_metric_prefix: str = ""

    def apply_configuration(self) -> None:
        """Fill empty settings with their defaults."""
        if not self.export_period:
            self.export_period = DEFAULT_EXPORT_PERIOD
        if not self.metadata_fetch_timeout:
            self.metadata_fetch_timeout = DEFAULT_METADATA_FETCH_TIMEOUT
        if not self.metadata_fetch_interval:
            self.metadata_fetch_interval = DEFAULT_METADATA_FETCH_INTERVAL
        if not self.api_endpoint:
            self.api_endpoint = DEFAULT_ENDPOINT


def parse_stackdriver_config(data: Mapping[str, Any] | str | bytes) -> StackdriverExporterConfig:
    """Build a config from a JSON document or an already decoded mapping."""
    if isinstance(data, (str, bytes, bytearray)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError("stackdriver exporter config must be a JSON object")
    metadata = data.get("gceMetadata") or {}
    if not isinstance(metadata, Mapping):
        raise ValueError("field 'gceMetadata' must be an object")
    panic = data.get("panicOnMetadataFetchFailure", False)
    if not isinstance(panic, bool):
        raise ValueError("field 'panicOnMetadataFetchFailure' must be a boolean")
    return StackdriverExporterConfig(
        export_period=_string(data, "exportPeriod"),
        api_endpoint=_string(data, "apiEndpoint"),
        gce_metadata=GCEMetadata.from_dict(metadata),
        metadata_fetch_timeout=_string(data, "metadataFetchTimeout"),
        metadata_fetch_interval=_string(data, "metadataFetchInterval"),
        panic_on_metadata_fetch_failure=panic,
        custom_metric_prefix=_string(data, "customMetricPrefix"),
    )