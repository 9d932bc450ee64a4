"""Command-line and application options of the node problem detector."""

from __future__ import annotations

import argparse
import os
import re
import socket
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Iterable
from urllib.parse import urlsplit

from npdetect.duration import parse_duration
from npdetect.exporters import get_exporter_handler, get_exporter_names

__all__ = [
    "OptionsError",
    "NodeProblemDetectorOptions",
    "new_node_problem_detector_options",
]

CUSTOM_PLUGIN_MONITOR_NAME = "custom-plugin-monitor"
SYSTEM_LOG_MONITOR_NAME = "system-log-monitor"

_CONFIG_DEST_PREFIX = "config."
_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}
_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*:")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class OptionsError(ValueError):
    """Raised when the options are invalid or cannot be completed."""


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _string_slice(text: str) -> list[str]:
    return text.split(",") if text else []


def _check_url(text: str) -> None:
    """Raise ValueError if ``text`` cannot be parsed as a URL reference."""
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in text):
        raise ValueError("invalid control character in URL")
    rest = text.split("#", 1)[0]
    if rest.startswith(":"):
        raise ValueError("missing protocol scheme")
    match = _SCHEME.match(rest)
    if match:
        rest = rest[match.end():]
    else:
        first_segment = rest.split("?", 1)[0].split("/", 1)[0]
        if ":" in first_segment:
            raise ValueError("first path segment in URL cannot contain colon")
    if _BAD_ESCAPE.search(rest.split("?", 1)[0]):
        raise ValueError("invalid URL escape")
    parts = urlsplit(text)
    parts.port  # raises ValueError on a malformed port


@dataclass
class NodeProblemDetectorOptions:
    """Options of the node problem detector, with the command-line defaults."""

    print_version: bool = False
    hostname_override: str = ""
    server_port: int = 20256
    server_address: str = "127.0.0.1"

    enable_k8s_exporter: bool = True
    event_namespace: str = ""
    api_server_override: str = ""
    api_server_wait_timeout: timedelta = timedelta(minutes=5)
    api_server_wait_interval: timedelta = timedelta(seconds=5)
    k8s_exporter_heartbeat_period: timedelta = timedelta(minutes=5)

    prometheus_server_port: int = 20257
    prometheus_server_address: str = "127.0.0.1"

    system_log_monitor_config_paths: list[str] = field(default_factory=list)
    custom_plugin_monitor_config_paths: list[str] = field(default_factory=list)
    monitor_config_paths: dict[str, list[str]] = field(default_factory=dict)

    node_name: str = ""

    def add_flags(
        self, parser: argparse.ArgumentParser, problem_daemon_names: Iterable[str]
    ) -> None:
        """Add every option as a flag of ``parser``; read them back with apply_args."""
        suppress = argparse.SUPPRESS
        parser.add_argument(
            "--system-log-monitors", dest="system_log_monitor_config_paths",
            type=_string_slice, action="extend", default=suppress,
            help="DEPRECATED, replaced by --config.system-log-monitor. "
            "List of paths to system log monitor config files, comma separated.",
        )
        parser.add_argument(
            "--custom-plugin-monitors", dest="custom_plugin_monitor_config_paths",
            type=_string_slice, action="extend", default=suppress,
            help="DEPRECATED, replaced by --config.custom-plugin-monitor. "
            "List of paths to custom plugin monitor config files, comma separated.",
        )
        parser.add_argument(
            "--enable-k8s-exporter", dest="enable_k8s_exporter", nargs="?",
            const=True, type=_parse_bool, default=suppress,
            help="Enables reporting to Kubernetes API server.",
        )
        parser.add_argument(
            "--event-namespace", dest="event_namespace", default=suppress,
            help="Namespace for recorded Kubernetes events.",
        )
        parser.add_argument(
            "--apiserver-override", dest="api_server_override", default=suppress,
            help="Custom URI used to connect to Kubernetes ApiServer. "
            "This is ignored if --enable-k8s-exporter is false.",
        )
        parser.add_argument(
            "--apiserver-wait-timeout", dest="api_server_wait_timeout",
            type=parse_duration, default=suppress,
            help="The timeout on waiting for kube-apiserver to be ready. "
            "This is ignored if --enable-k8s-exporter is false.",
        )
        parser.add_argument(
            "--apiserver-wait-interval", dest="api_server_wait_interval",
            type=parse_duration, default=suppress,
            help="The interval between the checks on the readiness of kube-apiserver. "
            "This is ignored if --enable-k8s-exporter is false.",
        )
        parser.add_argument(
            "--k8s-exporter-heartbeat-period", dest="k8s_exporter_heartbeat_period",
            type=parse_duration, default=suppress,
            help="The period at which k8s-exporter does forcibly sync with apiserver.",
        )
        parser.add_argument(
            "--version", dest="print_version", nargs="?", const=True,
            type=_parse_bool, default=suppress,
            help="Print version information and quit",
        )
        parser.add_argument(
            "--hostname-override", dest="hostname_override", default=suppress,
            help="Custom node name used to override hostname",
        )
        parser.add_argument(
            "--port", dest="server_port", type=int, default=suppress,
            help="The port to bind the node problem detector server. Use 0 to disable.",
        )
        parser.add_argument(
            "--address", dest="server_address", default=suppress,
            help="The address to bind the node problem detector server.",
        )
        parser.add_argument(
            "--prometheus-port", dest="prometheus_server_port", type=int,
            default=suppress,
            help="The port to bind the Prometheus scrape endpoint. Prometheus exporter "
            "is enabled by default at port 20257. Use 0 to disable.",
        )
        parser.add_argument(
            "--prometheus-address", dest="prometheus_server_address", default=suppress,
            help="The address to bind the Prometheus scrape endpoint.",
        )

        for exporter_name in get_exporter_names():
            exporter_options = get_exporter_handler(exporter_name).options
            if exporter_options is not None and hasattr(exporter_options, "add_flags"):
                exporter_options.add_flags(parser)

        for name in problem_daemon_names:
            self.monitor_config_paths.setdefault(name, [])
            parser.add_argument(
                f"--config.{name}", dest=_CONFIG_DEST_PREFIX + name,
                type=_string_slice, action="extend", default=suppress,
                help=f"Comma separated configurations for {name} monitor.",
            )

    def apply_args(self, namespace: argparse.Namespace) -> None:
        """Copy the flags that were given on the command line into the options."""
        values = vars(namespace)
        for option in fields(self):
            if option.name in values:
                setattr(self, option.name, values[option.name])
        for dest, value in values.items():
            if dest.startswith(_CONFIG_DEST_PREFIX):
                self.monitor_config_paths[dest[len(_CONFIG_DEST_PREFIX):]] = list(value)

    def validate(self) -> None:
        """Raise OptionsError if the options cannot be used to start the detector."""
        if self.enable_k8s_exporter:
            try:
                _check_url(self.api_server_override)
            except ValueError as exc:
                raise OptionsError(
                    f"apiserver-override {self.api_server_override!r} "
                    f"is not a valid HTTP URI: {exc}"
                ) from exc

        if self.system_log_monitor_config_paths:
            raise OptionsError(
                "SystemLogMonitorConfigPaths is deprecated. It should have been "
                "reassigned to MonitorConfigPaths. This should not happen."
            )
        if self.custom_plugin_monitor_config_paths:
            raise OptionsError(
                "CustomPluginMonitorConfigPaths is deprecated. It should have been "
                "reassigned to MonitorConfigPaths. This should not happen."
            )

        if not any(self.monitor_config_paths.values()):
            raise OptionsError("No configuration option for any problem daemon is specified.")

    def _merge_deprecated(self, paths: list[str], daemon: str, old_flag: str, label: str) -> None:
        current = self.monitor_config_paths.get(daemon)
        if current is None:
            raise OptionsError(f"{label} is not supported")
        if current:
            raise OptionsError(
                f"Option --{old_flag} is deprecated in favor of --config.{daemon}. "
                "They cannot be set at the same time."
            )
        current.extend(paths)

    def set_config_from_deprecated_options(self) -> None:
        """Move paths given with the deprecated flags into monitor_config_paths."""
        if self.system_log_monitor_config_paths:
            self._merge_deprecated(
                self.system_log_monitor_config_paths,
                SYSTEM_LOG_MONITOR_NAME, "system-log-monitors", "System log monitor",
            )
            self.system_log_monitor_config_paths = []

        if self.custom_plugin_monitor_config_paths:
            self._merge_deprecated(
                self.custom_plugin_monitor_config_paths,
                CUSTOM_PLUGIN_MONITOR_NAME, "custom-plugin-monitors", "Custom plugin monitor",
            )
            self.custom_plugin_monitor_config_paths = []

    def set_node_name(self) -> None:
        """Set node_name from the override, then NODE_NAME, then the host name."""
        if self.hostname_override:
            self.node_name = self.hostname_override
            return

        self.node_name = os.environ.get("NODE_NAME", "")
        if self.node_name:
            return

        try:
            self.node_name = socket.gethostname()
        except OSError as exc:
            raise OptionsError(f"Failed to get host name: {exc}") from exc


def new_node_problem_detector_options(
    problem_daemon_names: Iterable[str],
) -> NodeProblemDetectorOptions:
    """Create options with an empty config path list for every problem daemon."""
    return NodeProblemDetectorOptions(
        monitor_config_paths={name: [] for name in problem_daemon_names}
    )