import json

import pytest

from npdetect.stackdriver_config import (
    GCEMetadata,
    StackdriverExporterConfig,
    parse_stackdriver_config,
)


def _metadata():
    return GCEMetadata(
        project_id="some-gcp-project",
        zone="us-central1-a",
        instance_id="56781234",
        instance_name="some-gce-instance",
    )


@pytest.mark.parametrize(
    "original, wanted",
    [
        (
            StackdriverExporterConfig(
                export_period="60s",
                metadata_fetch_timeout="600s",
                metadata_fetch_interval="10s",
                api_endpoint="monitoring.googleapis.com:443",
                gce_metadata=_metadata(),
            ),
            StackdriverExporterConfig(
                export_period="60s",
                metadata_fetch_timeout="600s",
                metadata_fetch_interval="10s",
                api_endpoint="monitoring.googleapis.com:443",
                gce_metadata=_metadata(),
            ),
        ),
        (
            StackdriverExporterConfig(
                export_period="60s",
                metadata_fetch_timeout="600s",
                metadata_fetch_interval="10s",
                api_endpoint="staging-monitoring.sandbox.googleapis.com:443",
                gce_metadata=_metadata(),
            ),
            StackdriverExporterConfig(
                export_period="60s",
                metadata_fetch_timeout="600s",
                metadata_fetch_interval="10s",
                api_endpoint="staging-monitoring.sandbox.googleapis.com:443",
                gce_metadata=_metadata(),
            ),
        ),
        (
            StackdriverExporterConfig(),
            StackdriverExporterConfig(
                export_period="1m0s",
                metadata_fetch_timeout="10m0s",
                metadata_fetch_interval="10s",
                api_endpoint="monitoring.googleapis.com:443",
                gce_metadata=GCEMetadata(),
            ),
        ),
    ],
    ids=["normal", "staging API endpoint", "empty"],
)
def test_apply_configuration(original, wanted):
    original.apply_configuration()
    assert original == wanted


def test_has_missing_field():
    assert _metadata().has_missing_field() is False
    assert GCEMetadata().has_missing_field() is True
    partial = _metadata()
    partial.zone = ""
    assert partial.has_missing_field() is True


def test_parse_stackdriver_config_from_json():
    document = json.dumps(
        {
            "exportPeriod": "60s",
            "apiEndpoint": "monitoring.googleapis.com:443",
            "gceMetadata": {
                "projectID": "some-gcp-project",
                "zone": "us-central1-a",
                "instanceID": "56781234",
                "instanceName": "some-gce-instance",
            },
            "panicOnMetadataFetchFailure": True,
            "customMetricPrefix": "custom.googleapis.com/npd",
        }
    )
    config = parse_stackdriver_config(document)
    assert config.export_period == "60s"
    assert config.gce_metadata == _metadata()
    assert config.panic_on_metadata_fetch_failure is True
    assert config.custom_metric_prefix == "custom.googleapis.com/npd"
    assert config.metadata_fetch_timeout == ""
    config.apply_configuration()
    assert config.metadata_fetch_timeout == "10m0s"


def test_parse_stackdriver_config_rejects_bad_types():
    with pytest.raises(ValueError):
        parse_stackdriver_config({"exportPeriod": 60})
    with pytest.raises(ValueError):
        parse_stackdriver_config("[]")