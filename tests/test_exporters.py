import pytest

from npdetect import exporters
from npdetect.exporters import (
    ExporterHandler,
    ExporterRegistry,
    UnknownExporterError,
)


@pytest.fixture
def default_registry():
    yield
    for name in exporters.get_exporter_names():
        pass
    exporters._default_registry.clear()


def _none_factory(options):
    return None


def test_registration():
    registry = ExporterRegistry()
    registry.register("foo", ExporterHandler(_none_factory))
    registry.register("bar", ExporterHandler(_none_factory))
    assert sorted(registry.names()) == ["bar", "foo"]
    registry.clear()
    assert registry.names() == []


def test_get_exporter_handler():
    registry = ExporterRegistry()
    foo = ExporterHandler(_none_factory)
    registry.register("foo", foo)
    assert registry.handler("foo") is foo
    with pytest.raises(UnknownExporterError):
        registry.handler("bar")


def test_register_replaces_existing():
    registry = ExporterRegistry()
    first = ExporterHandler(_none_factory)
    second = ExporterHandler(_none_factory)
    registry.register("foo", first)
    registry.register("foo", second)
    assert registry.names() == ["foo"]
    assert registry.handler("foo") is second


def test_create_exporters_skips_none_and_passes_options():
    registry = ExporterRegistry()
    seen = []

    def factory(options):
        seen.append(options)
        return ("exporter", options)

    registry.register("real", ExporterHandler(factory, options="opts"))
    registry.register("disabled", ExporterHandler(_none_factory))
    assert registry.create_exporters() == [("exporter", "opts")]
    assert seen == ["opts"]


def test_module_level_registry(default_registry):
    handler = ExporterHandler(lambda options: "nil-exporter")
    exporters.register("nil", handler)
    assert exporters.get_exporter_names() == ["nil"]
    assert exporters.get_exporter_handler("nil") is handler
    assert exporters.new_exporters() == ["nil-exporter"]
    with pytest.raises(UnknownExporterError):
        exporters.get_exporter_handler("missing")