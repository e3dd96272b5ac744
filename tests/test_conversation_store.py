import pytest

from relay.services.conversation_store import ConversationStore, MediaPointer, Role
from tests.conftest import SYSTEM_PROMPT, FakeClock

SYSTEM = {"role": "system", "content": SYSTEM_PROMPT}


def _store(max_turns: int, clock=None, ttl: float = 60) -> ConversationStore:
    return ConversationStore(SYSTEM_PROMPT, max_turns=max_turns, ttl_seconds=ttl, clock=clock or FakeClock())


class TestAppend:
    def test_first_append_creates_session_with_system_preamble(self, store):
        store.append_user("U1", "hi")

        assert "U1" in store
        assert store.get_conversation("U1") == [SYSTEM, {"role": "user", "content": "hi"}]

    def test_empty_and_whitespace_text_is_ignored(self, store):
        store.append_user("U1", "")
        store.append_assistant("U1", "   ")
        store.append_user("U1", None)

        assert "U1" not in store

    def test_roles_are_recorded_in_order(self, store):
        store.append_user("U1", "hi")
        store.append_assistant("U1", "hello")

        roles = [message["role"] for message in store.get_conversation("U1")]
        assert roles == [Role.SYSTEM.value, Role.USER.value, Role.ASSISTANT.value]


class TestTrimming:
    def test_history_never_exceeds_max_turns(self):
        store = _store(max_turns=4)
        for i in range(25):
            if i % 2:
                store.append_assistant("U1", f"a{i}")
            else:
                store.append_user("U1", f"u{i}")
            history = store.get_conversation("U1")
            assert len(history) - 1 <= 4
            assert history[0] == SYSTEM
            assert sum(1 for m in history if m["role"] == "system") == 1

    def test_oldest_turn_dropped_with_single_turn_window(self):
        store = _store(max_turns=1)
        store.append_user("U1", "hi")
        store.append_assistant("U1", "hello")
        store.append_user("U1", "bye")

        assert store.get_conversation("U1") == [SYSTEM, {"role": "user", "content": "bye"}]

    def test_oldest_turn_dropped_with_two_turn_window(self):
        store = _store(max_turns=2)
        store.append_user("U1", "hi")
        store.append_assistant("U1", "hello")
        store.append_user("U1", "bye")

        assert store.get_conversation("U1") == [
            SYSTEM,
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "bye"},
        ]

    def test_zero_turns_keeps_only_system(self):
        store = _store(max_turns=0)
        store.append_user("U1", "hi")

        assert store.get_conversation("U1") == [SYSTEM]

    def test_negative_max_turns_rejected(self):
        with pytest.raises(ValueError):
            _store(max_turns=-1)


class TestSnapshot:
    def test_snapshot_is_a_copy(self, store):
        store.append_user("U1", "hi")

        snapshot = store.get_conversation("U1")
        snapshot[1]["content"] = "tampered"
        snapshot.append({"role": "user", "content": "extra"})

        assert store.get_conversation("U1") == [SYSTEM, {"role": "user", "content": "hi"}]

    def test_unknown_identity_returns_preamble_without_creating_session(self, store):
        assert store.get_conversation("nobody") == [SYSTEM]
        assert "nobody" not in store


class TestMedia:
    def test_set_media_overwrites_and_keeps_history(self, store):
        store.append_user("U1", "look")
        store.set_media("U1", MediaPointer("m1", "image/jpeg", "a.jpg"))
        store.set_media("U1", MediaPointer("m2", "video/mp4", "b.mp4"))

        assert store.get_last_media("U1") == MediaPointer("m2", "video/mp4", "b.mp4")
        assert len(store.get_conversation("U1")) == 2

    def test_no_media_returns_none(self, store):
        assert store.get_last_media("U1") is None


class TestReset:
    def test_reset_collapses_history_and_clears_media(self, store):
        store.append_user("U1", "hi")
        store.append_assistant("U1", "hello")
        store.set_media("U1", MediaPointer("m1"))

        store.reset("U1")

        assert store.get_conversation("U1") == [SYSTEM]
        assert store.get_last_media("U1") is None
        assert "U1" in store

    def test_reset_is_idempotent(self, store):
        store.append_user("U1", "hi")

        store.reset("U1")
        first = store.get_conversation("U1")
        store.reset("U1")

        assert store.get_conversation("U1") == first == [SYSTEM]

    def test_reset_unknown_identity_is_noop(self, store):
        store.reset("nobody")
        assert "nobody" not in store


class TestExport:
    def test_export_excludes_system_and_tags_roles(self, store):
        store.append_user("U1", "hi")
        store.append_assistant("U1", "hello")

        assert store.export_text("U1") == "User: hi\nAssistant: hello"

    def test_export_unknown_identity_is_empty(self, store):
        assert store.export_text("nobody") == ""


class TestSweep:
    def test_expired_session_removed(self, clock):
        store = _store(max_turns=4, clock=clock, ttl=60)
        t0 = clock.now
        store.append_user("U1", "hi")

        assert store.sweep_expired(t0 + 60 + 1) == ["U1"]
        assert "U1" not in store

    def test_session_within_ttl_survives(self, clock):
        store = _store(max_turns=4, clock=clock, ttl=60)
        t0 = clock.now
        store.append_user("U1", "hi")

        assert store.sweep_expired(t0 + 60 - 1) == []
        assert store.sweep_expired(t0 + 60) == []
        assert "U1" in store

    def test_sweep_defaults_to_injected_clock(self, clock):
        store = _store(max_turns=4, clock=clock, ttl=60)
        store.append_user("U1", "hi")
        clock.advance(30)
        store.append_user("U2", "hi")
        clock.advance(31)

        assert store.sweep_expired() == ["U1"]
        assert "U2" in store

    def test_activity_refreshes_ttl(self, clock):
        store = _store(max_turns=4, clock=clock, ttl=60)
        store.append_user("U1", "hi")
        clock.advance(50)
        store.set_media("U1", MediaPointer("m1"))
        clock.advance(50)

        assert store.sweep_expired() == []


class TestStats:
    def test_counts_sessions_and_turns(self, store):
        store.append_user("U1", "a")
        store.append_assistant("U1", "b")
        store.append_user("U2", "c")

        assert store.stats() == {"sessions": 2, "turns": 3}
        assert len(store) == 2

    def test_turns_include_trimmed_messages(self):
        store = _store(max_turns=1)
        for text in ("a", "b", "c"):
            store.append_user("U1", text)

        assert len(store.get_conversation("U1")) == 2
        assert store.stats() == {"sessions": 1, "turns": 3}
