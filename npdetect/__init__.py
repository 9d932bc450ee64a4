"""Node problem detection: plugin monitor configuration, problem model, condition syncing, exporters and options."""

__version__ = "0.1.0"