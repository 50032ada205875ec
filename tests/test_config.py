"""Tests for config parsing and validation."""

import pytest

from pollgauge.config import Config, parse_duration, parse_listen_address
from pollgauge.errors import ConfigError


def test_parse_duration_units():
    assert parse_duration("300s") == 300
    assert parse_duration("5m") == 300
    assert parse_duration("1h30m") == 5400
    assert parse_duration("250ms") == pytest.approx(0.25)
    assert parse_duration("1.5s") == pytest.approx(1.5)
    assert parse_duration("10us") == pytest.approx(1e-5)


def test_parse_duration_bare_seconds():
    assert parse_duration("60") == 60
    assert parse_duration("0.5") == 0.5


def test_parse_duration_negative():
    assert parse_duration("-2s") == -2


@pytest.mark.parametrize("text", ["", "abc", "5x", "s", "1h 30m", "inf", "nan"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ConfigError):
        parse_duration(text)


def test_parse_listen_address():
    assert parse_listen_address(":8081") == ("", 8081)
    assert parse_listen_address("127.0.0.1:9000") == ("127.0.0.1", 9000)
    assert parse_listen_address("[::1]:8081") == ("::1", 8081)


@pytest.mark.parametrize("address", ["8081", "host:", "host:abc", ":70000"])
def test_parse_listen_address_rejects(address):
    with pytest.raises(ConfigError):
        parse_listen_address(address)


def test_defaults_are_valid():
    config = Config().validate()
    assert config.scrape_interval == 300
    assert config.listen_address == ":8081"
    assert config.bind_address == ("", 8081)


def test_config_is_frozen():
    config = Config()
    with pytest.raises(AttributeError):
        config.fetch_url = "http://elsewhere"


@pytest.mark.parametrize("overrides", [
    dict(fetch_url=""),
    dict(scrape_interval=0),
    dict(scrape_interval=-1),
    dict(fetch_timeout=0),
    dict(shutdown_grace=-1),
    dict(metrics_path="metrics"),
    dict(metrics_path="/healthz"),
    dict(namespace="bad-name"),
    dict(listen_address="nope"),
])
def test_validate_rejects(overrides):
    with pytest.raises(ConfigError):
        Config(**overrides).validate()
