"""Command-line options of the health checker."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Sequence

from npdetect.duration import DurationError, parse_duration

__all__ = ["HealthCheckerOptions", "OptionsError", "parse_health_checker_args"]

KUBELET_COMPONENT = "kubelet"
DOCKER_COMPONENT = "docker"
CRI_COMPONENT = "cri"
KUBE_PROXY_COMPONENT = "kube-proxy"
CONTAINERD_SERVICE = "containerd"

SUPPORTED_COMPONENTS = frozenset(
    {KUBELET_COMPONENT, DOCKER_COMPONENT, CRI_COMPONENT, KUBE_PROXY_COMPONENT}
)

DEFAULT_CRICTL = "/usr/bin/crictl"
DEFAULT_CRI_SOCKET_PATH = "unix:///var/run/containerd/containerd.sock"
DEFAULT_CRI_TIMEOUT = timedelta(seconds=2)
DEFAULT_COOLDOWN_TIME = timedelta(minutes=2)
DEFAULT_LOOPBACK_TIME = timedelta(0)
DEFAULT_HEALTH_CHECK_TIMEOUT = timedelta(seconds=10)

_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


class OptionsError(ValueError):
    """Raised when the health checker options are not valid."""


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _duration(text: str) -> timedelta:
    try:
        return parse_duration(text)
    except DurationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _log_pattern(text: str) -> tuple[int, str]:
    """Parse ``<failureThresholdCount>:<logPattern>``."""
    count_text, sep, pattern = text.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError(
            f"invalid log pattern {text!r}: expected <failureThresholdCount>:<logPattern>"
        )
    try:
        count = int(count_text)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid failure threshold count {count_text!r} in log pattern {text!r}"
        ) from None
    return count, pattern


@dataclass
class HealthCheckerOptions:
    """Which component to check, how, and whether to repair it."""

    component: str = ""
    service: str = ""
    enable_repair: bool = False
    cri_ctl_path: str = ""
    cri_socket_path: str = ""
    cri_timeout: timedelta = timedelta(0)
    cool_down_time: timedelta = timedelta(0)
    loop_back_time: timedelta = timedelta(0)
    health_check_timeout: timedelta = timedelta(0)
    log_patterns: list[tuple[int, str]] = field(default_factory=list)

    def add_flags(self, parser: argparse.ArgumentParser) -> None:
        """Add the health checker flags, with their command-line defaults."""
        parser.add_argument(
            "--component", dest="component", default=KUBELET_COMPONENT,
            help="The component to check health for. Supports kubelet, docker, "
            "kube-proxy, and cri",
        )
        service_help = (
            "The underlying service responsible for the component. Set to the "
            "corresponding component for docker and kubelet, containerd for cri."
        )
        if sys.platform.startswith("linux"):
            parser.add_argument(
                "--systemd-service", dest="service", default="",
                help="DEPRECATED, please use --service flag instead. " + service_help,
            )
        parser.add_argument("--service", dest="service", default="", help=service_help)
        parser.add_argument(
            "--enable-repair", dest="enable_repair", nargs="?", const=True,
            type=_parse_bool, default=True,
            help="Flag to enable/disable repair attempt for the component.",
        )
        parser.add_argument(
            "--crictl-path", dest="cri_ctl_path", default=DEFAULT_CRICTL,
            help="The path to the crictl binary. This is used to check health of cri component.",
        )
        parser.add_argument(
            "--cri-socket-path", dest="cri_socket_path", default=DEFAULT_CRI_SOCKET_PATH,
            help="The path to the cri socket. Used with crictl to specify the socket path.",
        )
        parser.add_argument(
            "--cri-timeout", dest="cri_timeout", type=_duration,
            default=DEFAULT_CRI_TIMEOUT, help="The duration to wait for crictl to run.",
        )
        parser.add_argument(
            "--cooldown-time", dest="cool_down_time", type=_duration,
            default=DEFAULT_COOLDOWN_TIME,
            help="The duration to wait for the service to be up before attempting repair.",
        )
        parser.add_argument(
            "--loopback-time", dest="loop_back_time", type=_duration,
            default=DEFAULT_LOOPBACK_TIME,
            help="The duration to loop back, if it is 0, health-check will check from start time.",
        )
        parser.add_argument(
            "--health-check-timeout", dest="health_check_timeout", type=_duration,
            default=DEFAULT_HEALTH_CHECK_TIMEOUT,
            help="The time to wait before marking the component as unhealthy.",
        )
        parser.add_argument(
            "--log-pattern", dest="log_patterns", type=_log_pattern, action="append",
            default=[],
            help="The log pattern to look for in service journald logs. The format for "
            "flag value <failureThresholdCount>:<logPattern>",
        )

    def validate(self) -> None:
        """Raise OptionsError if the options are not valid."""
        if self.component not in SUPPORTED_COMPONENTS:
            raise OptionsError(
                "the component specified is not supported. "
                "Supported components are : <kubelet/docker/cri/kube-proxy>"
            )
        if self.enable_repair and not self.service:
            raise OptionsError("service cannot be empty when repair is enabled")
        if self.component != CRI_COMPONENT:
            return
        if not self.cri_ctl_path:
            raise OptionsError("the crictl-path cannot be empty for cri component")
        if not self.cri_socket_path:
            raise OptionsError("the cri-socket-path cannot be empty for cri component")

    def set_defaults(self) -> None:
        """Derive the service from the component when it was not given."""
        if self.service:
            return
        if self.component != CRI_COMPONENT:
            self.service = self.component
            return
        self.service = CONTAINERD_SERVICE


def parse_health_checker_args(argv: Sequence[str] | None = None) -> HealthCheckerOptions:
    """Parse health checker flags from ``argv`` (the process arguments by default)."""
    options = HealthCheckerOptions()
    parser = argparse.ArgumentParser(prog="health-checker")
    options.add_flags(parser)
    namespace = parser.parse_args(argv)
    for option in fields(options):
        value = getattr(namespace, option.name)
        if isinstance(value, list):
            value = list(value)
        setattr(options, option.name, value)
    return options