"""Configuration tests — env vars, PORT fallback, feed validation."""

import pytest
from pydantic import ValidationError

from telemetry_relay.config import BUNDLED_STATIC_DIR, Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("TELEMETRY_RELAY_PORT", raising=False)
    s = Settings()
    assert s.port == 8080
    assert s.host == "0.0.0.0"
    assert s.feed_mode == "synthetic"
    assert s.static_dir == BUNDLED_STATIC_DIR
    assert (BUNDLED_STATIC_DIR / "index.html").is_file()


def test_plain_port_env(monkeypatch):
    monkeypatch.delenv("TELEMETRY_RELAY_PORT", raising=False)
    monkeypatch.setenv("PORT", "9123")
    assert Settings().port == 9123


def test_prefixed_port_env(monkeypatch):
    monkeypatch.setenv("TELEMETRY_RELAY_PORT", "9200")
    assert Settings().port == 9200


def test_prefixed_env(monkeypatch):
    monkeypatch.setenv("TELEMETRY_RELAY_FEED_MODE", "off")
    monkeypatch.setenv("TELEMETRY_RELAY_SEND_QUEUE_SIZE", "3")
    s = Settings()
    assert s.feed_mode == "off"
    assert s.send_queue_size == 3


def test_port_keyword_override():
    assert Settings(port=7000).port == 7000


def test_unknown_feed_mode_rejected():
    with pytest.raises(ValidationError):
        Settings(feed_mode="carrier-pigeon")


def test_replay_requires_file():
    with pytest.raises(ValidationError):
        Settings(feed_mode="replay")


def test_queue_size_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(send_queue_size=0)
