from datetime import datetime, timezone

import pytest

from npdetect.problem import Condition, ConditionStatus
from npdetect.problemclient import (
    ConfigOverrides,
    FakeProblemClient,
    NodeCondition,
    ObjectReference,
    RecordedEvent,
    generate_patch,
    get_config_overrides,
    get_node_ref,
    to_node_condition,
)

NOW = datetime(2020, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


def _conditions():
    return [
        NodeCondition(
            type="TestType1",
            status="True",
            last_transition_time=NOW,
            reason="TestReason1",
            message="TestMessage1",
        ),
        NodeCondition(
            type="TestType2",
            status="False",
            last_transition_time=NOW,
            reason="TestReason2",
            message="TestMessage2",
        ),
    ]


def test_generate_patch():
    patch = generate_patch(_conditions())
    expected = (
        b'{"status":{"conditions":['
        b'{"type":"TestType1","status":"True","lastHeartbeatTime":null,'
        b'"lastTransitionTime":"2020-01-02T03:04:05Z","reason":"TestReason1",'
        b'"message":"TestMessage1"},'
        b'{"type":"TestType2","status":"False","lastHeartbeatTime":null,'
        b'"lastTransitionTime":"2020-01-02T03:04:05Z","reason":"TestReason2",'
        b'"message":"TestMessage2"}]}}'
    )
    assert patch == expected


def test_generate_patch_empty():
    assert generate_patch([]) == b'{"status":{"conditions":[]}}'


def test_event():
    client = FakeProblemClient()
    event = client.eventf("Warning", "test", "test reason", "test message")
    assert str(event) == "Warning test reason test message"
    assert client.events == [RecordedEvent("Warning", "test", "test reason", "test message")]


def test_event_formats_arguments():
    client = FakeProblemClient()
    event = client.eventf("Normal", "src", "r", "found %d in %s", 3, "log")
    assert event.message == "found 3 in log"


def test_node_ref():
    assert get_node_ref("", "test-node") == ObjectReference(
        kind="Node", name="test-node", uid="test-node", namespace=""
    )


def test_to_node_condition():
    cond = Condition(
        type="KernelDeadlock",
        status=ConditionStatus.TRUE,
        transition=NOW,
        reason="DockerHung",
        message="task hung",
    )
    assert to_node_condition(cond) == NodeCondition(
        type="KernelDeadlock",
        status="True",
        last_transition_time=NOW,
        reason="DockerHung",
        message="task hung",
    )


def test_set_and_assert_conditions():
    client = FakeProblemClient()
    conditions = _conditions()
    client.set_conditions(conditions)
    client.assert_conditions(conditions)
    assert client.conditions == {c.type: c for c in conditions}
    assert client.get_conditions(["TestType1"]) == [conditions[0]]


def test_get_conditions_only_known_types():
    client = FakeProblemClient()
    client.set_conditions(_conditions())
    got = client.get_conditions(["TestType2", "Missing"])
    assert [c.type for c in got] == ["TestType2"]


def test_injected_errors():
    client = FakeProblemClient()
    client.inject_error("set_conditions", RuntimeError("injected error"))
    with pytest.raises(RuntimeError, match="injected error"):
        client.set_conditions(_conditions())
    assert client.conditions == {}
    client.inject_error("get_conditions", RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        client.get_conditions(["TestType1"])


def test_get_node_raises():
    with pytest.raises(LookupError):
        FakeProblemClient().get_node()


def test_config_overrides_server_and_insecure():
    overrides = get_config_overrides("https://10.0.0.1:6443?insecure=true")
    assert overrides == ConfigOverrides(
        server="https://10.0.0.1:6443", insecure_skip_tls_verify=True
    )


def test_config_overrides_without_scheme():
    assert get_config_overrides("127.0.0.1") == ConfigOverrides()


def test_config_overrides_bad_bool():
    with pytest.raises(ValueError):
        get_config_overrides("http://host?insecure=maybe")