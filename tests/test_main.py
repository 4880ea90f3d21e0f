"""Tests for the Slack Events webhook."""

import itertools

import pytest
from fastapi.testclient import TestClient

from insult_bot.dispatch_service import Dispatcher
from insult_bot.errors import RemoteStoreError
from insult_bot import main
from insult_bot.main import app, get_dispatcher
from insult_bot.vocab_service import WordCacheCell

from .conftest import FakeWordStore, RecordingSink, word_records


_timestamps = itertools.count(1)


def message_envelope(text, user="U123", channel="C1", ts=None, event_type="message", **extra):
    ts = ts or f"{next(_timestamps)}.000100"
    event = {"type": event_type, "channel": channel, "user": user, "text": text, "ts": ts}
    event.update(extra)
    return {"type": "event_callback", "event": event}


@pytest.fixture(autouse=True)
def _fresh_recent_posts():
    main._recent_posts.clear()
    yield
    main._recent_posts.clear()


@pytest.fixture
def store() -> FakeWordStore:
    return FakeWordStore(word_records(["awful"], ["jerk"]))


@pytest.fixture
def client(store, sink):
    dispatcher = Dispatcher(WordCacheCell(store), store, sink)
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    try:
        # One client keeps one event loop for the shared cache cell
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


class TestEnvelope:
    def test_url_verification_echoes_challenge(self, client) -> None:
        resp = client.post("/slack/events", json={"type": "url_verification", "token": "t", "challenge": "abc123"})
        assert resp.status_code == 200
        assert resp.json() == {"challenge": "abc123"}

    def test_url_verification_without_challenge(self, client) -> None:
        resp = client.post("/slack/events", json={"type": "url_verification"})
        assert "error" in resp.json()

    def test_missing_type(self, client) -> None:
        resp = client.post("/slack/events", json={"event": {}})
        assert resp.status_code == 200
        assert resp.json() == {"error": "slack event missing field 'type'"}

    def test_non_string_type(self, client) -> None:
        resp = client.post("/slack/events", json={"type": 5})
        assert resp.json() == {"error": "expected string for field 'type'"}

    def test_body_not_json(self, client) -> None:
        resp = client.post("/slack/events", content=b"not json", headers={"Content-Type": "application/json"})
        assert resp.json() == {"error": "request body is not JSON"}

    def test_unknown_type_is_acknowledged(self, client, sink) -> None:
        resp = client.post("/slack/events", json={"type": "app_rate_limited"})
        assert resp.json() == {"ok": True}
        assert sink.sent == []


class TestMessageEvents:
    def test_insult_me(self, client, sink) -> None:
        resp = client.post("/slack/events", json=message_envelope("insult me"))
        assert resp.json() == {"ok": True}
        assert sink.sent == [("C1", "<@U123> is an awful jerk")]

    def test_app_mention_add_word_then_duplicate(self, client, sink, store) -> None:
        envelope = message_envelope("<@UBOT> add adjective Icky", event_type="app_mention")
        client.post("/slack/events", json=envelope)
        client.post("/slack/events", json=message_envelope("add adjective Icky"))
        assert [text for _c, text in sink.sent] == ["Added.", "I already have that word!"]
        assert store.scan_calls == 1
        assert len(store.puts) == 1

    def test_mention_delivered_as_message_and_app_mention_is_handled_once(self, client, sink, store) -> None:
        for event_type in ("message", "app_mention"):
            client.post(
                "/slack/events",
                json=message_envelope("<@UBOT> add noun doorknob", ts="1700000000.000200", event_type=event_type),
            )
        assert sink.sent == [("C1", "Added.")]
        assert len(store.puts) == 1

    def test_same_ts_in_other_channel_is_dispatched(self, client, sink) -> None:
        client.post("/slack/events", json=message_envelope("insult me", channel="C1", ts="5.0"))
        client.post("/slack/events", json=message_envelope("insult me", channel="C2", ts="5.0"))
        assert [channel for channel, _text in sink.sent] == ["C1", "C2"]

    def test_recent_posts_are_bounded(self, client, monkeypatch) -> None:
        monkeypatch.setattr(main, "RECENT_EVENT_LIMIT", 3)
        for _ in range(5):
            client.post("/slack/events", json=message_envelope("hello there"))
        assert len(main._recent_posts) == 3

    def test_bot_messages_are_ignored(self, client, sink) -> None:
        client.post("/slack/events", json=message_envelope("insult me", bot_id="B1"))
        client.post("/slack/events", json=message_envelope("insult me", subtype="bot_message"))
        assert sink.sent == []

    def test_slack_retries_are_ignored(self, client, sink) -> None:
        resp = client.post(
            "/slack/events",
            json=message_envelope("insult me"),
            headers={"X-Slack-Retry-Num": "1", "X-Slack-Retry-Reason": "http_timeout"},
        )
        assert resp.json() == {"ok": True}
        assert sink.sent == []

    def test_malformed_event_is_ignored(self, client, sink) -> None:
        resp = client.post("/slack/events", json={"type": "event_callback", "event": {"type": "message"}})
        assert resp.json() == {"ok": True}
        assert sink.sent == []

    def test_chatter_gets_no_reply(self, client, sink) -> None:
        client.post("/slack/events", json=message_envelope("hello there"))
        assert sink.sent == []


class TestInternalFailure:
    def test_cache_failure_is_logged_not_sent(self, sink, caplog: pytest.LogCaptureFixture) -> None:
        store = FakeWordStore(scan_error=RemoteStoreError("scan failed"))
        dispatcher = Dispatcher(WordCacheCell(store), store, sink)
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        try:
            with TestClient(app) as c:
                resp = c.post("/slack/events", json=message_envelope("insult me"))
        finally:
            app.dependency_overrides.clear()
        assert resp.json() == {"ok": True}
        assert sink.sent == []
        assert "scan failed" in caplog.text


def test_health(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("insult_bot.main.get_word_cache_cell", lambda: WordCacheCell(FakeWordStore()))
    with TestClient(app) as c:
        resp = c.get("/health")
    assert resp.json() == {"ok": True, "cache_loaded": False}
