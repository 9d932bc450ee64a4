# npdetect

Building blocks for detecting and reporting problems on a cluster node.
The package has no third-party dependencies.

## What is in the package

- `npdetect.duration`: `parse_duration` and `format_duration` read and write
  duration strings such as `"300ms"`, `"1m30s"` or `"10m0s"`; bad input
  raises `DurationError`.
- `npdetect.problem`: the problem model: `Status` (plugin exit status),
  `ProblemType`, `ConditionStatus`, `Severity`, `Condition`, `Event`,
  `ProblemStatus`, `CustomRule` and `Result`. `Condition.from_dict` and
  `CustomRule.from_dict` build them from their JSON form.
- `npdetect.plugin_config`: the custom plugin monitor configuration:
  `PluginGlobalConfig`, `CustomPluginConfig`, `parse_custom_plugin_config`,
  `load_custom_plugin_config` and `ConfigError`.
- `npdetect.problemclient`: `NodeCondition`, `to_node_condition`,
  `generate_patch` (the status patch for a node), `get_node_ref`,
  `get_config_overrides` (server and `insecure` option from an API server
  override URI) and the in-memory `FakeProblemClient`.
- `npdetect.condition_manager`: `ConditionManager`, which batches condition
  updates and pushes them through a problem client, with `RealClock` and
  `FakeClock`.
- `npdetect.exporters`: a registry of exporter handlers (`ExporterHandler`,
  `ExporterRegistry`, `UnknownExporterError`) and module-level functions over
  a default registry.
- `npdetect.stackdriver_config`: `StackdriverExporterConfig`, `GCEMetadata`
  and `parse_stackdriver_config`.
- `npdetect.options`, `npdetect.logcounter_options`,
  `npdetect.healthchecker_options`: command-line options of the detector, the
  log counter and the health checker, built on `argparse`.

## Custom plugin monitor configuration

Loading a file only parses it; defaults and validation are separate steps.

```python
from npdetect.plugin_config import ConfigError, load_custom_plugin_config

try:
    config = load_custom_plugin_config("/etc/npd/custom-plugin-monitor.json")
    config.apply_configuration()
    config.validate()
except ConfigError as exc:
    print(f"bad configuration: {exc}")
```

`apply_configuration` fills unset settings with their defaults (a 5s global
timeout, a 30s invoke interval, a maximum output length of 80, a concurrency
of 3, message-change based condition updates off, the initial status report
on, metrics reporting on) and parses every duration string, including rule
timeouts. `validate` rejects plugins other than `"custom"`, rule timeouts
above the global timeout, rule paths that do not exist and permanent rules
whose condition has no default condition.

## Durations

```python
from npdetect.duration import DurationError, format_duration, parse_duration

interval = parse_duration("1m30s")
print(format_duration(interval))   # 1m30s

try:
    parse_duration("soon")
except DurationError as exc:
    print(exc)
```

## Exporters

```python
from npdetect.exporters import ExporterHandler, get_exporter_handler, new_exporters, register

register("log", ExporterHandler(create_exporter=lambda options: object()))
handler = get_exporter_handler("log")   # UnknownExporterError if not registered
exporters = new_exporters()             # factories returning None are skipped
```

`ExporterRegistry` gives a private registry with the same operations
(`register`, `names`, `handler`, `create_exporters`, `clear`).

## Syncing conditions

```python
from datetime import datetime, timedelta

from npdetect.condition_manager import ConditionManager, FakeClock
from npdetect.problem import Condition, ConditionStatus
from npdetect.problemclient import FakeProblemClient

client = FakeProblemClient()
manager = ConditionManager(client, FakeClock(datetime.now()), timedelta(minutes=1))
manager.update_condition(Condition("KernelDeadlock", ConditionStatus.TRUE))
if manager.need_updates():
    manager.sync()
print(client.conditions["KernelDeadlock"].status)   # True
```

`start` runs the same checks every second on a background thread until
`stop`. A failed `set_conditions` marks a resync, done once 10 seconds have
passed; a heartbeat sync is due once the heartbeat period has passed since
the last attempt. `FakeClock.step` and `FakeProblemClient.inject_error`
exercise these paths.

## Command-line options

```python
from npdetect.healthchecker_options import OptionsError, parse_health_checker_args

options = parse_health_checker_args(["--component", "cri", "--enable-repair", "false"])
options.set_defaults()   # service becomes "containerd" for cri
try:
    options.validate()
except OptionsError as exc:
    print(exc)
```

`parse_log_counter_args` does the same for the log counter options. For the
detector, `NodeProblemDetectorOptions.add_flags` adds the flags to a parser,
`apply_args` copies the given ones back, and `set_config_from_deprecated_options`,
`set_node_name` and `validate` complete and check them.

## What the package does not do

It runs no plugins and does not turn plugin results into conditions and
events; it installs no commands; it talks to no real API server (only the
in-memory `FakeProblemClient` is provided) and serves no HTTP or metrics
endpoint. It holds the configuration, model, syncing logic and option
handling such a detector is built from.

## Running the tests

Install the `test` extra and run `python -m pytest` from the project directory.