import pytest

from meshgate.protocol import (
    TopicPatternMismatchError,
    command_subscription,
    command_topic,
    parse_command_topic,
    telemetry_topic,
)


def test_telemetry_topic():
    assert telemetry_topic(7) == "home/sensors/7"
    assert telemetry_topic(0xFFFF) == "home/sensors/65535"
    assert telemetry_topic(3, prefix="site/a") == "site/a/3"


def test_command_topic_and_subscription():
    assert command_topic(42) == "home/control/42"
    assert command_subscription() == "home/control/#"
    assert command_subscription("x/y") == "x/y/#"


@pytest.mark.parametrize("node_id", [-1, 65536, True, "7"])
def test_invalid_node_id(node_id):
    with pytest.raises(ValueError):
        telemetry_topic(node_id)


@pytest.mark.parametrize("node_id", [0, 1, 42, 65535])
def test_parse_round_trip(node_id):
    assert parse_command_topic(command_topic(node_id)) == node_id


def test_parse_leading_zeros():
    assert parse_command_topic("home/control/007") == 7


@pytest.mark.parametrize(
    "topic",
    [
        "home/control/",
        "home/control/abc",
        "home/control/42x",
        "home/control/42/extra",
        "home/control/-1",
        "home/control/65536",
        "home/sensors/42",
        "home/control",
        "xhome/control/42",
    ],
)
def test_parse_rejects(topic):
    with pytest.raises(TopicPatternMismatchError) as exc_info:
        parse_command_topic(topic)
    assert exc_info.value.topic == topic


def test_parse_custom_prefix():
    assert parse_command_topic("a.b/ctl/9", prefix="a.b/ctl") == 9
    with pytest.raises(TopicPatternMismatchError):
        parse_command_topic("aXb/ctl/9", prefix="a.b/ctl")
