"""Command-line options of the log counter."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, fields
from typing import Sequence

__all__ = ["LogCounterOptions", "parse_log_counter_args"]


@dataclass
class LogCounterOptions:
    """What logs to look at and how many matches trigger the condition."""

    journald_source: str = ""
    log_path: str = ""
    lookback: str = ""
    delay: str = ""
    pattern: str = ""
    count: int = 1

    def add_flags(self, parser: argparse.ArgumentParser) -> None:
        """Add the options to ``parser``, using the current values as defaults."""
        parser.add_argument(
            "--journald-source", dest="journald_source", default=self.journald_source,
            help="The source configuration of journald, e.g., kernel, kubelet, dockerd, etc",
        )
        parser.add_argument(
            "--log-path", dest="log_path", default=self.log_path,
            help="The log path that log watcher looks up",
        )
        parser.add_argument(
            "--lookback", dest="lookback", default=self.lookback,
            help="The time log watcher looks up",
        )
        parser.add_argument(
            "--delay", dest="delay", default=self.delay,
            help="The time duration log watcher delays after node boot time. This is "
            "useful when log watcher needs to wait for some time until the node is stable.",
        )
        parser.add_argument(
            "--pattern", dest="pattern", default=self.pattern,
            help="The regular expression to match the problem in log. "
            "The pattern must match to the end of the line.",
        )
        parser.add_argument(
            "--count", dest="count", type=int, default=self.count,
            help="The number of times the pattern must be found to trigger the condition",
        )


def parse_log_counter_args(argv: Sequence[str] | None = None) -> LogCounterOptions:
    """Parse log counter flags from ``argv`` (the process arguments by default)."""
    options = LogCounterOptions()
    parser = argparse.ArgumentParser(prog="log-counter")
    options.add_flags(parser)
    namespace = parser.parse_args(argv)
    for option in fields(options):
        setattr(options, option.name, getattr(namespace, option.name))
    return options