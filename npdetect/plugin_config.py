"""Configuration of the custom plugin monitor: parsing, defaults and validation."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

from npdetect.duration import DurationError, format_duration, parse_duration
from npdetect.problem import Condition, CustomRule, ProblemType

__all__ = [
    "ConfigError",
    "PluginGlobalConfig",
    "CustomPluginConfig",
    "parse_custom_plugin_config",
    "load_custom_plugin_config",
]

DEFAULT_GLOBAL_TIMEOUT = timedelta(seconds=5)
DEFAULT_GLOBAL_TIMEOUT_STRING = format_duration(DEFAULT_GLOBAL_TIMEOUT)
DEFAULT_INVOKE_INTERVAL = timedelta(seconds=30)
DEFAULT_INVOKE_INTERVAL_STRING = format_duration(DEFAULT_INVOKE_INTERVAL)
DEFAULT_MAX_OUTPUT_LENGTH = 80
DEFAULT_CONCURRENCY = 3
DEFAULT_MESSAGE_CHANGE_BASED_CONDITION_UPDATE = False
DEFAULT_ENABLE_METRICS_REPORTING = True
DEFAULT_SKIP_INITIAL_STATUS = False

CUSTOM_PLUGIN_NAME = "custom"


class ConfigError(ValueError):
    """Raised when a custom plugin configuration is malformed or invalid."""


@dataclass
class PluginGlobalConfig:
    """Settings shared by every rule of one custom plugin monitor."""

    invoke_interval_string: str | None = None
    timeout_string: str | None = None
    invoke_interval: timedelta | None = None
    timeout: timedelta | None = None
    max_output_length: int | None = None
    concurrency: int | None = None
    enable_message_change_based_condition_update: bool | None = None
    skip_initial_status: bool | None = None


@dataclass
class CustomPluginConfig:
    """Configuration of one custom plugin monitor."""

    plugin: str = ""
    plugin_global_config: PluginGlobalConfig = field(default_factory=PluginGlobalConfig)
    source: str = ""
    default_conditions: list[Condition] = field(default_factory=list)
    rules: list[CustomRule] = field(default_factory=list)
    enable_metrics_reporting: bool | None = None

    def apply_configuration(self) -> None:
        """Fill unset settings with defaults and parse every duration string."""
        glob = self.plugin_global_config

        if glob.timeout_string is None:
            glob.timeout_string = DEFAULT_GLOBAL_TIMEOUT_STRING
        try:
            glob.timeout = parse_duration(glob.timeout_string)
        except DurationError as exc:
            raise ConfigError(
                f"error in parsing global timeout {glob.timeout_string!r}: {exc}"
            ) from exc

        if glob.invoke_interval_string is None:
            glob.invoke_interval_string = DEFAULT_INVOKE_INTERVAL_STRING
        try:
            glob.invoke_interval = parse_duration(glob.invoke_interval_string)
        except DurationError as exc:
            raise ConfigError(
                f"error in parsing invoke interval {glob.invoke_interval_string!r}: {exc}"
            ) from exc

        if glob.max_output_length is None:
            glob.max_output_length = DEFAULT_MAX_OUTPUT_LENGTH
        if glob.concurrency is None:
            glob.concurrency = DEFAULT_CONCURRENCY
        if glob.enable_message_change_based_condition_update is None:
            glob.enable_message_change_based_condition_update = (
                DEFAULT_MESSAGE_CHANGE_BASED_CONDITION_UPDATE
            )
        if glob.skip_initial_status is None:
            glob.skip_initial_status = DEFAULT_SKIP_INITIAL_STATUS

        for rule in self.rules:
            if rule.timeout_string is not None:
                try:
                    rule.timeout = parse_duration(rule.timeout_string)
                except DurationError as exc:
                    raise ConfigError(
                        f"error in parsing rule timeout {rule!r}: {exc}"
                    ) from exc

        if self.enable_metrics_reporting is None:
            self.enable_metrics_reporting = DEFAULT_ENABLE_METRICS_REPORTING

    def validate(self) -> None:
        """Raise ConfigError if the settings are not usable."""
        if self.plugin != CUSTOM_PLUGIN_NAME:
            raise ConfigError(
                f'NPD does not support {self.plugin!r} plugin for now. Only support "custom"'
            )

        global_timeout = self.plugin_global_config.timeout
        for rule in self.rules:
            if rule.timeout is None:
                continue
            if global_timeout is None:
                raise ConfigError(
                    f"global timeout is not set, cannot check rule timeout. Rule: {rule!r}"
                )
            if rule.timeout > global_timeout:
                raise ConfigError(
                    "plugin timeout is greater than global timeout. "
                    f"Rule: {rule!r}. Global timeout: {format_duration(global_timeout)}"
                )

        for rule in self.rules:
            try:
                os.stat(rule.path)
            except FileNotFoundError:
                raise ConfigError(
                    f"rule path {rule.path!r} does not exist. Rule: {rule!r}"
                ) from None
            except OSError:
                pass

        condition_types = {cond.type for cond in self.default_conditions}
        for rule in self.rules:
            if rule.type is not ProblemType.PERMANENT:
                continue
            if rule.condition not in condition_types:
                raise ConfigError(
                    f"Permanent problem {rule.condition} does not have preset default condition."
                )


def _optional(data: Mapping[str, Any], key: str, kind: type, label: str) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if kind is int and isinstance(value, bool):
        raise ConfigError(f"field {key!r} must be {label}, got {value!r}")
    if not isinstance(value, kind):
        raise ConfigError(f"field {key!r} must be {label}, got {value!r}")
    return value


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"field {key!r} must be a string, got {value!r}")
    return value


def _objects(data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, Mapping) for v in value):
        raise ConfigError(f"field {key!r} must be a list of objects")
    return value


def _parse_global(data: Mapping[str, Any]) -> PluginGlobalConfig:
    return PluginGlobalConfig(
        invoke_interval_string=_optional(data, "invoke_interval", str, "a string"),
        timeout_string=_optional(data, "timeout", str, "a string"),
        max_output_length=_optional(data, "max_output_length", int, "an integer"),
        concurrency=_optional(data, "concurrency", int, "an integer"),
        enable_message_change_based_condition_update=_optional(
            data, "enable_message_change_based_condition_update", bool, "a boolean"
        ),
        skip_initial_status=_optional(data, "skip_initial_status", bool, "a boolean"),
    )


def parse_custom_plugin_config(
    data: Mapping[str, Any] | str | bytes,
) -> CustomPluginConfig:
    """Build a config from a JSON document or a decoded mapping; no defaults applied."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError("custom plugin config must be a JSON object")

    global_data = data.get("pluginConfig") or {}
    if not isinstance(global_data, Mapping):
        raise ConfigError("field 'pluginConfig' must be an object")

    try:
        conditions = [Condition.from_dict(c) for c in _objects(data, "conditions")]
        rules = [CustomRule.from_dict(r) for r in _objects(data, "rules")]
    except ConfigError:
        raise
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    return CustomPluginConfig(
        plugin=_string(data, "plugin"),
        plugin_global_config=_parse_global(global_data),
        source=_string(data, "source"),
        default_conditions=conditions,
        rules=rules,
        enable_metrics_reporting=_optional(data, "metricsReporting", bool, "a boolean"),
    )


def load_custom_plugin_config(path: str | os.PathLike[str]) -> CustomPluginConfig:
    """Read and parse a config file; defaults and validation are left to the caller."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"failed to read configuration file {str(path)!r}: {exc}") from exc
    return parse_custom_plugin_config(raw)