import time
from datetime import datetime, timedelta

from npdetect.condition_manager import RESYNC_PERIOD, ConditionManager, FakeClock, RealClock
from npdetect.problem import Condition, ConditionStatus
from npdetect.problemclient import FakeProblemClient, to_node_condition

HEARTBEAT_PERIOD = timedelta(minutes=1)
BASE = datetime(2024, 1, 1, 12, 0, 0)


def new_test_manager():
    client = FakeProblemClient()
    clock = FakeClock(BASE)
    manager = ConditionManager(client, clock, HEARTBEAT_PERIOD)
    return manager, client, clock


def new_test_condition(name, transition=BASE):
    return Condition(
        type=name,
        status=ConditionStatus.TRUE,
        transition=transition,
        reason="TestReason",
        message="test message",
    )


def test_need_updates():
    m, _, _ = new_test_manager()
    c = new_test_condition("TestCondition", BASE)
    m.update_condition(c)
    assert m.need_updates() is True
    assert m.conditions[c.type] == c

    # Same condition doesn't need update.
    m.update_condition(c)
    assert m.need_updates() is False
    assert m.conditions[c.type] == c

    # Same condition with a different timestamp needs update.
    c = new_test_condition("TestCondition", BASE + timedelta(microseconds=1))
    m.update_condition(c)
    assert m.need_updates() is True
    assert m.conditions[c.type] == c

    # New condition needs update.
    c = new_test_condition("TestConditionNew", BASE + timedelta(microseconds=2))
    m.update_condition(c)
    assert m.need_updates() is True
    assert m.conditions[c.type] == c


def test_get_conditions():
    m, _, _ = new_test_manager()
    assert m.get_conditions() == []
    c1 = new_test_condition("TestCondition1")
    c2 = new_test_condition("TestCondition2")
    m.update_condition(c1)
    m.update_condition(c2)
    assert m.need_updates() is True
    assert c1 in m.get_conditions()
    assert c2 in m.get_conditions()


def test_get_conditions_returns_copies():
    m, _, _ = new_test_manager()
    m.update_condition(new_test_condition("TestCondition"))
    m.need_updates()
    m.get_conditions()[0].reason = "Changed"
    assert m.get_conditions()[0].reason == "TestReason"


def test_resync():
    m, client, clock = new_test_manager()
    condition = new_test_condition("TestCondition")
    m.conditions = {condition.type: condition}
    m.sync()
    client.assert_conditions([to_node_condition(condition)])
    assert client.conditions["TestCondition"].reason == "TestReason"

    assert m.need_resync() is False
    clock.step(RESYNC_PERIOD)
    assert m.need_resync() is False

    client.inject_error("set_conditions", RuntimeError("injected error"))
    m.sync()

    assert m.need_resync() is False
    clock.step(RESYNC_PERIOD)
    assert m.need_resync() is True


def test_heartbeat():
    m, client, clock = new_test_manager()
    condition = new_test_condition("TestCondition")
    m.conditions = {condition.type: condition}
    m.sync()
    client.assert_conditions([to_node_condition(condition)])
    assert list(client.conditions) == ["TestCondition"]

    assert m.need_heartbeat() is False
    clock.step(HEARTBEAT_PERIOD)
    assert m.need_heartbeat() is True


def test_heartbeat_needed_before_first_sync():
    m, _, _ = new_test_manager()
    assert m.need_heartbeat() is True


def test_fake_clock_step():
    clock = FakeClock(BASE)
    clock.step(timedelta(seconds=5))
    assert clock.now() == BASE + timedelta(seconds=5)


def test_real_clock_moves_forward():
    clock = RealClock()
    first = clock.now()
    assert clock.now() >= first


def test_sync_loop_pushes_updates():
    client = FakeProblemClient()
    manager = ConditionManager(
        client, FakeClock(BASE), HEARTBEAT_PERIOD, update_period=timedelta(milliseconds=10)
    )
    condition = new_test_condition("LoopCondition")
    manager.start()
    try:
        manager.update_condition(condition)
        deadline = time.monotonic() + 5
        while "LoopCondition" not in client.conditions and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        manager.stop()
    assert client.conditions["LoopCondition"] == to_node_condition(condition)


def test_sync_sends_every_condition():
    m, client, _ = new_test_manager()
    first = new_test_condition("TestCondition1")
    second = new_test_condition("TestCondition2")
    m.conditions = {first.type: first, second.type: second}
    m.sync()
    assert sorted(client.conditions) == ["TestCondition1", "TestCondition2"]
    assert client.conditions["TestCondition2"] == to_node_condition(second)