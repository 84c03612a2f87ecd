"""
tests/test_store.py — Challenge Store Tests (memory + SQL)
===========================================================

Every test runs against both backends through the parametrized ``store``
fixture, so the two implementations cannot drift apart.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from skate.engine.errors import StaleRecord, ValidationError
from skate.engine.records import ChallengeStatus


def _new(store, creator="alice", trick="Kickflip", **extra):
    return store.create_challenge({"creator_id": creator, "trick": trick, **extra})


# ===========================================================================
# Challenges
# ===========================================================================
class TestCreateChallenge:
    def test_defaults(self, store):
        c = _new(store)
        assert c.status == ChallengeStatus.OPEN
        assert c.opponent_id is None
        assert c.creator_letters == c.opponent_letters == ""
        assert c.current_turn is None
        assert c.expires_at is None
        assert c.loser_id is None
        assert c.version == 1
        assert c.created_at.tzinfo is not None

    def test_ids_are_unique(self, store):
        assert _new(store).id != _new(store).id

    def test_store_owned_fields_rejected(self, store):
        with pytest.raises(ValidationError):
            _new(store, id="mine")

    def test_status_string_is_normalized(self, store):
        c = _new(store, status="active", opponent_id="bob", current_turn="bob")
        assert c.status is ChallengeStatus.ACTIVE

    def test_get_roundtrip(self, store):
        created = _new(store, difficulty=4, buy_in=500, video_url="v.mp4")
        fetched = store.get_challenge(created.id)
        assert fetched == created

    def test_get_unknown(self, store):
        assert store.get_challenge("nope") is None

    def test_list_in_creation_order(self, store):
        ids = [_new(store, trick=f"Trick {i}").id for i in range(4)]
        assert [c.id for c in store.list_challenges()] == ids

    def test_list_for_user(self, store):
        mine = _new(store, creator="alice")
        _new(store, creator="carol")
        joined = _new(store, creator="dave")
        store.update_challenge(joined.id, {"opponent_id": "alice"})
        assert [c.id for c in store.list_challenges_for_user("alice")] == [mine.id, joined.id]


class TestUpdateChallenge:
    def test_update_bumps_version_and_timestamp(self, store):
        c = _new(store)
        updated = store.update_challenge(c.id, {"video_url": "new.mp4"})
        assert updated.video_url == "new.mp4"
        assert updated.version == c.version + 1
        assert updated.updated_at >= c.updated_at
        assert updated.created_at == c.created_at
        assert store.get_challenge(c.id) == updated

    def test_update_unknown_returns_none(self, store):
        assert store.update_challenge("nope", {"video_url": "x"}) is None

    def test_cas_match(self, store):
        c = _new(store)
        updated = store.update_challenge(c.id, {"difficulty": 3}, expected_version=1)
        assert updated.version == 2

    def test_cas_stale_changes_nothing(self, store):
        c = _new(store)
        store.update_challenge(c.id, {"difficulty": 2})
        with pytest.raises(StaleRecord) as exc_info:
            store.update_challenge(c.id, {"difficulty": 5}, expected_version=1)
        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2
        current = store.get_challenge(c.id)
        assert current.difficulty == 2
        assert current.version == 2

    def test_cannot_write_store_owned_fields(self, store):
        c = _new(store)
        with pytest.raises(ValidationError):
            store.update_challenge(c.id, {"version": 99})

    def test_status_and_datetime_roundtrip(self, store):
        c = _new(store)
        deadline = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
        store.update_challenge(c.id, {
            "status": ChallengeStatus.ACTIVE,
            "opponent_id": "bob",
            "current_turn": "bob",
            "expires_at": deadline,
        })
        fetched = store.get_challenge(c.id)
        assert fetched.status is ChallengeStatus.ACTIVE
        assert fetched.expires_at == deadline


class TestCommitTransition:
    def test_writes_challenge_attempt_and_audit_together(self, store):
        c = _new(store)
        commit = store.commit_transition(
            c.id,
            {"creator_letters": "S"},
            expected_version=1,
            attempt={"user_id": "alice", "landed": False, "video_url": None},
            audit={"actor_id": "admin", "action": "AWARD_LETTER", "before": c.to_dict()},
        )
        assert commit.challenge.version == 2
        assert commit.attempt.challenge_id == c.id
        assert commit.audit.after["creatorLetters"] == "S"
        assert commit.audit.before["creatorLetters"] == ""
        assert store.get_challenge(c.id) == commit.challenge
        assert store.list_attempts(c.id) == [commit.attempt]
        assert store.list_audit_entries() == [commit.audit]

    def test_stale_commit_writes_nothing(self, store):
        c = _new(store)
        store.update_challenge(c.id, {"difficulty": 2})
        with pytest.raises(StaleRecord):
            store.commit_transition(
                c.id,
                {"creator_letters": "S"},
                expected_version=1,
                attempt={"user_id": "alice", "landed": False},
                audit={"actor_id": "admin", "action": "AWARD_LETTER", "before": None},
            )
        assert store.get_challenge(c.id).creator_letters == ""
        assert store.list_attempts(c.id) == []
        assert store.list_audit_entries() == []

    def test_bad_attempt_rolls_back_update(self, store):
        c = _new(store)
        with pytest.raises(ValidationError):
            store.commit_transition(
                c.id, {"creator_letters": "S"}, attempt={"user_id": "alice", "landed": "no"},
            )
        current = store.get_challenge(c.id)
        assert current.version == 1
        assert current.creator_letters == ""
        assert store.list_attempts(c.id) == []

    def test_unknown_id(self, store):
        assert store.commit_transition("nope", {"difficulty": 2}) is None


# ===========================================================================
# Attempts
# ===========================================================================
class TestAttempts:
    def test_journal_order_and_scope(self, store):
        a = _new(store)
        b = _new(store)
        store.create_attempt({"challenge_id": a.id, "user_id": "bob", "landed": False})
        store.create_attempt({"challenge_id": b.id, "user_id": "dave", "landed": True})
        store.create_attempt({
            "challenge_id": a.id, "user_id": "alice", "landed": True, "video_url": "a.mp4",
        })
        attempts = store.list_attempts(a.id)
        assert [(x.user_id, x.landed) for x in attempts] == [("bob", False), ("alice", True)]
        assert attempts[1].video_url == "a.mp4"
        assert attempts[0].timestamp.tzinfo is not None

    def test_no_attempts(self, store):
        assert store.list_attempts(_new(store).id) == []


# ===========================================================================
# Users
# ===========================================================================
class TestUsers:
    def test_create_and_lookup(self, store):
        user = store.create_user("TonyHawk_99", user_id="user1")
        assert store.get_user("user1") == user
        assert store.get_user_by_username("TonyHawk_99") == user
        assert store.get_user("user2") is None

    def test_generated_id(self, store):
        assert store.create_user("FlipMaster_21").id

    def test_duplicate_username(self, store):
        store.create_user("SkaterDude_42")
        with pytest.raises(ValidationError):
            store.create_user("SkaterDude_42")

    def test_duplicate_id(self, store):
        store.create_user("A", user_id="u")
        with pytest.raises(ValidationError):
            store.create_user("B", user_id="u")

    def test_list(self, store):
        store.create_user("b_user", user_id="1")
        store.create_user("a_user", user_id="2")
        assert [u.username for u in store.list_users()] == ["a_user", "b_user"]


# ===========================================================================
# Audit
# ===========================================================================
class TestAudit:
    def test_most_recent_first_with_limit(self, store):
        for i in range(3):
            store.add_audit_entry(
                actor_id="admin", action="AWARD_LETTER", challenge_id=f"c{i}",
                before={"n": i}, after={"n": i + 1}, reason=None,
            )
        entries = store.list_audit_entries(limit=2)
        assert [e.challenge_id for e in entries] == ["c2", "c1"]
        assert entries[0].before == {"n": 2}
        assert entries[0].after == {"n": 3}
