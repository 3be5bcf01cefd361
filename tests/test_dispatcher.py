from __future__ import annotations

import base64

import pytest

from conftest import LICENSE, PNG_BYTES, FakeAI
from server.challenge import DailyChallenge
from server.dispatcher import Dispatcher
from server.license_gate import LicenseGate
from server.prompting import PromptBuilder
from services.errors import ConfigurationError

SOURCE = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def dispatcher(store, fake_ai):
    return Dispatcher(store, LicenseGate({LICENSE}), fake_ai, DailyChallenge(), PromptBuilder())


def test_blank_message_is_a_no_op(dispatcher, store, fake_ai):
    assert dispatcher.handle("   ", LICENSE) is None
    assert store.chat_history() == []
    assert fake_ai.calls == []


@pytest.mark.parametrize("key", [None, "", "wrong"])
def test_bad_key_persists_nothing(dispatcher, store, fake_ai, key):
    result = dispatcher.handle("show me a dragon", key)
    assert result.forbidden
    assert result.reply == PromptBuilder.SLEEPING
    assert store.chat_history() == []
    assert store.list_gallery() == []
    assert fake_ai.calls == []


def test_chat_sends_full_history_with_persona(dispatcher, store, fake_ai):
    store.append_turn("model", "Welcome!")
    result = dispatcher.handle("What is a comet?", LICENSE)

    assert result.reply == fake_ai.reply
    assert result.image_url is None
    _, history, system, temperature, top_p = fake_ai.calls[0]
    assert history == [
        {"role": "model", "content": "Welcome!"},
        {"role": "user", "content": "What is a comet?"},
    ]
    assert "SoloMan" in system
    assert (temperature, top_p) == (0.8, 0.9)
    assert store.chat_history()[-1] == {"role": "model", "content": fake_ai.reply}


def test_history_window_limits_context(store, fake_ai):
    d = Dispatcher(store, LicenseGate({LICENSE}), fake_ai, DailyChallenge(), history_window=2)
    for i in range(4):
        store.append_turn("user", f"old {i}")
    d.handle("newest", LICENSE)
    assert [t["content"] for t in fake_ai.calls[0][1]] == ["old 3", "newest"]


def test_generate_image_persists_gallery_and_reply(dispatcher, store, fake_ai):
    result = dispatcher.handle("Show me a dragon", LICENSE)

    assert fake_ai.calls == [("generate", "a dragon")]
    assert result.image_prompt == "a dragon"
    assert result.image_url.startswith("data:image/png;base64,")
    assert result.reply == "Here is the pic of a dragon you asked for! Isn't it cool? 🌟"
    assert not result.clear_edit_selection

    (entry,) = store.list_gallery()
    assert entry["kind"] == "generated"
    assert entry["prompt"] == "a dragon"
    assert entry["url"] == result.image_url
    assert store.chat_history() == [
        {"role": "user", "content": "Show me a dragon"},
        {"role": "model", "content": result.reply},
    ]


def test_edit_image_uses_pending_image(dispatcher, store, fake_ai):
    result = dispatcher.handle("add a party hat", LICENSE, image_under_edit=SOURCE)

    kind, prompt, image = fake_ai.calls[0]
    assert (kind, prompt) == ("edit", "add a party hat")
    assert image.data == PNG_BYTES
    assert result.clear_edit_selection
    assert result.image_prompt == "Edit: add a party hat"
    assert result.reply == PromptBuilder.EDIT_READY
    assert store.list_gallery()[0]["prompt"] == "Edit: add a party hat"


def test_provider_failure_falls_back_without_gallery(dispatcher, store, fake_ai):
    fake_ai.fail = True
    result = dispatcher.handle("show me a dragon", LICENSE)

    assert result.reply == PromptBuilder.FALLBACK
    assert result.image_url is None
    assert store.list_gallery() == []
    assert store.chat_history()[-1] == {"role": "model", "content": PromptBuilder.FALLBACK}


def test_unreadable_edit_image_falls_back(dispatcher, store, fake_ai):
    result = dispatcher.handle("make it blue", LICENSE, image_under_edit="data:image/png;base64,@@@")
    assert result.reply == PromptBuilder.FALLBACK
    assert fake_ai.calls == []
    assert store.list_gallery() == []


def test_space_pizza_awards_once(dispatcher):
    first = dispatcher.handle("show me a space pizza", LICENSE)
    second = dispatcher.handle("show me a space pizza", LICENSE)

    assert first.challenge_points == 50
    assert "50 bonus Star Points" in first.challenge_message
    assert second.challenge_points == 0
    assert second.challenge_message is None
    assert dispatcher.challenge.snapshot()["bonus_stars"] == 50


def test_unconfigured_ai_fails_before_persisting(store):
    d = Dispatcher(store, LicenseGate({LICENSE}), FakeAI(configured=False), DailyChallenge())
    with pytest.raises(ConfigurationError):
        d.handle("hi", LICENSE)
    assert store.chat_history() == []
