"""
tests/test_rules.py — Unit Tests for the Challenge State Machine
=================================================================

Tests the pure rule functions (no store, no HTTP, fixed clock).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from skate.engine import rules
from skate.engine.errors import InvalidState, NotYourTurn, SelfJoin, ValidationError
from skate.engine.records import Challenge, ChallengeStatus

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
WINDOW = timedelta(hours=24)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def open_challenge() -> Challenge:
    return Challenge(id="c1", creator_id="alice", trick="Kickflip", difficulty=2)


@pytest.fixture
def active_challenge(open_challenge) -> Challenge:
    """Bob has joined and is first to attempt."""
    return replace(open_challenge, **rules.join(open_challenge, "bob", now=NOW).changes)


def _apply(challenge: Challenge, transition: rules.Transition) -> Challenge:
    return replace(challenge, **transition.changes)


# ---------------------------------------------------------------------------
# Letter helpers
# ---------------------------------------------------------------------------
class TestLetters:
    @pytest.mark.parametrize("letters", ["", "S", "SK", "SKA", "SKAT", "SKATE"])
    def test_prefixes_are_valid(self, letters):
        assert rules.is_valid_letters(letters)

    @pytest.mark.parametrize("letters", ["K", "SA", "SKATES", "skate", "X"])
    def test_non_prefixes_are_invalid(self, letters):
        assert not rules.is_valid_letters(letters)

    def test_next_letter_follows_word_order(self):
        assert [rules.next_letter("SKATE"[:i]) for i in range(5)] == list("SKATE")

    def test_next_letter_after_skate_is_invalid_state(self):
        with pytest.raises(InvalidState):
            rules.next_letter("SKATE")

    def test_next_letter_rejects_corrupt_string(self):
        with pytest.raises(ValueError):
            rules.next_letter("KS")


# ---------------------------------------------------------------------------
# Status moves
# ---------------------------------------------------------------------------
class TestAdvanceStatus:
    @pytest.mark.parametrize("current, target", [
        (ChallengeStatus.OPEN, ChallengeStatus.ACTIVE),
        (ChallengeStatus.ACTIVE, ChallengeStatus.COMPLETED),
        (ChallengeStatus.ACTIVE, ChallengeStatus.EXPIRED),
    ])
    def test_forward_moves(self, current, target):
        assert rules.advance_status(current, target) == target

    @pytest.mark.parametrize("current, target", [
        (ChallengeStatus.OPEN, ChallengeStatus.COMPLETED),
        (ChallengeStatus.OPEN, ChallengeStatus.EXPIRED),
        (ChallengeStatus.ACTIVE, ChallengeStatus.OPEN),
        (ChallengeStatus.COMPLETED, ChallengeStatus.ACTIVE),
        (ChallengeStatus.EXPIRED, ChallengeStatus.COMPLETED),
        (ChallengeStatus.ACTIVE, ChallengeStatus.ACTIVE),
    ])
    def test_other_moves_rejected(self, current, target):
        with pytest.raises(InvalidState):
            rules.advance_status(current, target)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------
class TestNewChallengeFields:
    def test_valid_input_is_trimmed(self):
        fields = rules.new_challenge_fields(creator_id="alice", trick="  Heelflip ")
        assert fields["trick"] == "Heelflip"
        assert fields["difficulty"] == 1
        assert fields["buy_in"] == 0

    @pytest.mark.parametrize("kwargs", [
        {"creator_id": "", "trick": "Ollie"},
        {"creator_id": "alice", "trick": "   "},
        {"creator_id": "alice", "trick": "x" * 201},
        {"creator_id": "alice", "trick": "Ollie", "difficulty": 0},
        {"creator_id": "alice", "trick": "Ollie", "difficulty": 6},
        {"creator_id": "alice", "trick": "Ollie", "difficulty": True},
        {"creator_id": "alice", "trick": "Ollie", "buy_in": -1},
        {"creator_id": "alice", "trick": "Ollie", "video_url": 42},
    ])
    def test_invalid_input(self, kwargs):
        with pytest.raises(ValidationError):
            rules.new_challenge_fields(**kwargs)


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------
class TestJoin:
    def test_join_activates_and_gives_joiner_first_turn(self, open_challenge):
        t = rules.join(open_challenge, "bob", now=NOW, turn_window=WINDOW)
        assert t.changes == {
            "opponent_id": "bob",
            "status": ChallengeStatus.ACTIVE,
            "current_turn": "bob",
            "expires_at": NOW + WINDOW,
        }
        assert t.new_status == ChallengeStatus.ACTIVE
        assert t.attempt is None

    def test_self_join_rejected(self, open_challenge):
        with pytest.raises(SelfJoin):
            rules.join(open_challenge, "alice", now=NOW)

    def test_join_active_challenge_rejected(self, active_challenge):
        with pytest.raises(InvalidState):
            rules.join(active_challenge, "carol", now=NOW)

    def test_creator_join_on_active_is_invalid_state_not_self_join(self, active_challenge):
        with pytest.raises(InvalidState):
            rules.join(active_challenge, "alice", now=NOW)


# ---------------------------------------------------------------------------
# Record attempt
# ---------------------------------------------------------------------------
class TestRecordAttempt:
    def test_landed_passes_turn_without_letters(self, active_challenge):
        later = NOW + timedelta(hours=3)
        t = rules.record_attempt(active_challenge, "bob", True, now=later, turn_window=WINDOW)
        after = _apply(active_challenge, t)
        assert after.current_turn == "alice"
        assert after.expires_at == later + WINDOW
        assert after.creator_letters == after.opponent_letters == ""
        assert t.attempt == rules.AttemptDraft(user_id="bob", landed=True)

    def test_miss_gives_acting_player_a_letter(self, active_challenge):
        t = rules.record_attempt(active_challenge, "bob", False, now=NOW)
        after = _apply(active_challenge, t)
        assert after.opponent_letters == "S"
        assert after.creator_letters == ""
        assert after.current_turn == "alice"
        assert after.status == ChallengeStatus.ACTIVE

    def test_not_your_turn(self, active_challenge):
        with pytest.raises(NotYourTurn):
            rules.record_attempt(active_challenge, "alice", True, now=NOW)

    def test_stranger_is_not_your_turn(self, active_challenge):
        with pytest.raises(NotYourTurn):
            rules.record_attempt(active_challenge, "mallory", True, now=NOW)

    def test_open_challenge_is_invalid_state(self, open_challenge):
        with pytest.raises(InvalidState):
            rules.record_attempt(open_challenge, "alice", True, now=NOW)

    def test_fifth_miss_completes(self, active_challenge):
        challenge = replace(active_challenge, opponent_letters="SKAT")
        t = rules.record_attempt(challenge, "bob", False, now=NOW, video_url="v.mp4")
        after = _apply(challenge, t)
        assert after.status == ChallengeStatus.COMPLETED
        assert after.opponent_letters == "SKATE"
        assert after.loser_id == "bob"
        assert after.winner_id == "alice"
        assert after.current_turn is None
        assert after.expires_at is None
        assert t.attempt.video_url == "v.mp4"

    def test_completed_challenge_rejects_attempts(self, active_challenge):
        done = replace(active_challenge, status=ChallengeStatus.COMPLETED, current_turn=None)
        with pytest.raises(InvalidState):
            rules.record_attempt(done, "bob", True, now=NOW)

    def test_full_game_alternates_and_letters_stay_prefixes(self, active_challenge):
        challenge = active_challenge
        # Bob misses every time, Alice lands every time
        while challenge.status == ChallengeStatus.ACTIVE:
            player = challenge.current_turn
            t = rules.record_attempt(challenge, player, player == "alice", now=NOW)
            challenge = _apply(challenge, t)
            assert rules.is_valid_letters(challenge.creator_letters)
            assert rules.is_valid_letters(challenge.opponent_letters)
        assert challenge.opponent_letters == "SKATE"
        assert challenge.creator_letters == ""
        assert challenge.loser_id == "bob"


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------
class TestCheckExpiry:
    def test_not_due(self, active_challenge):
        assert rules.check_expiry(active_challenge, NOW + timedelta(hours=1)) is None

    def test_exactly_at_deadline_is_not_expired(self, active_challenge):
        assert rules.check_expiry(active_challenge, active_challenge.expires_at) is None

    def test_overdue_forfeits_turn_holder(self, active_challenge):
        t = rules.check_expiry(active_challenge, NOW + WINDOW + timedelta(seconds=1))
        after = _apply(active_challenge, t)
        assert after.status == ChallengeStatus.EXPIRED
        assert after.loser_id == "bob"
        assert after.winner_id == "alice"
        assert after.current_turn is None
        assert after.expires_at is None

    def test_open_challenge_never_expires(self, open_challenge):
        assert rules.check_expiry(open_challenge, NOW + timedelta(days=365)) is None

    def test_terminal_challenge_never_expires_again(self, active_challenge):
        done = replace(active_challenge, status=ChallengeStatus.COMPLETED)
        assert rules.check_expiry(done, NOW + timedelta(days=2)) is None


# ---------------------------------------------------------------------------
# Generic PATCH
# ---------------------------------------------------------------------------
class TestValidatePatch:
    def test_media_on_active(self, active_challenge):
        t = rules.validate_patch(active_challenge, {"video_url": "https://v/1.mp4"})
        assert t.changes == {"video_url": "https://v/1.mp4"}

    def test_stakes_while_open(self, open_challenge):
        t = rules.validate_patch(open_challenge, {"difficulty": 5, "buy_in": 250})
        assert t.changes == {"difficulty": 5, "buy_in": 250}

    def test_stakes_after_join(self, active_challenge):
        with pytest.raises(InvalidState):
            rules.validate_patch(active_challenge, {"buy_in": 100})

    @pytest.mark.parametrize("field", sorted(rules.RULE_FIELDS))
    def test_rule_owned_fields(self, open_challenge, field):
        with pytest.raises(ValidationError):
            rules.validate_patch(open_challenge, {field: None})

    @pytest.mark.parametrize("field", ["id", "creator_id", "trick", "version"])
    def test_immutable_fields(self, open_challenge, field):
        with pytest.raises(ValidationError):
            rules.validate_patch(open_challenge, {field: "x"})

    def test_empty_patch(self, open_challenge):
        with pytest.raises(ValidationError):
            rules.validate_patch(open_challenge, {})

    def test_bad_difficulty(self, open_challenge):
        with pytest.raises(ValidationError):
            rules.validate_patch(open_challenge, {"difficulty": 9})

    @pytest.mark.parametrize("field,wire", [
        ("video_url", "videoUrl"),
        ("video_thumbnail", "videoThumbnail"),
    ])
    def test_bad_media_error_uses_wire_name(self, open_challenge, field, wire):
        with pytest.raises(ValidationError, match=wire):
            rules.validate_patch(open_challenge, {field: 42})

    def test_terminal_is_frozen(self, active_challenge):
        done = replace(active_challenge, status=ChallengeStatus.EXPIRED)
        with pytest.raises(InvalidState):
            rules.validate_patch(done, {"video_thumbnail": "t.png"})


# ---------------------------------------------------------------------------
# Admin override
# ---------------------------------------------------------------------------
class TestAwardLetter:
    def test_award_leaves_turn_alone(self, active_challenge):
        t = rules.award_letter(active_challenge, "alice")
        assert t.changes == {"creator_letters": "S"}

    def test_award_can_finish_game(self, active_challenge):
        challenge = replace(active_challenge, creator_letters="SKAT")
        after = _apply(challenge, rules.award_letter(challenge, "alice"))
        assert after.status == ChallengeStatus.COMPLETED
        assert after.loser_id == "alice"

    def test_award_to_stranger(self, active_challenge):
        with pytest.raises(ValidationError):
            rules.award_letter(active_challenge, "mallory")

    def test_award_on_open(self, open_challenge):
        with pytest.raises(InvalidState):
            rules.award_letter(open_challenge, "alice")


def test_other_participant(active_challenge):
    assert rules.other_participant(active_challenge, "alice") == "bob"
    assert rules.other_participant(active_challenge, "bob") == "alice"
    with pytest.raises(ValidationError):
        rules.other_participant(active_challenge, "mallory")
