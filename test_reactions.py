"""
Tests for reaction counters and the single-choice reaction toggle
"""

import pytest

from feeds.core.decorator import FeedsValidationError, InvalidReactionError
from feeds.schemas.reactions import REACTION_OPTIONS, ReactionKind
from feeds.services.reactions import (
    apply_reaction,
    count_reactions,
    create_reaction_counts,
    parse_reaction_kind,
    reaction_input,
)


def test_create_reaction_counts_has_every_kind_in_display_order():
    counts = create_reaction_counts()
    assert list(counts) == [option.id for option in REACTION_OPTIONS]
    assert all(value == 0 for value in counts.values())


def test_create_reaction_counts_accepts_string_keys_and_clamps():
    counts = create_reaction_counts({"like": 3, "sad": -2, "love": "x", "bogus": 9})
    assert counts[ReactionKind.LIKE] == 3
    assert counts[ReactionKind.SAD] == 0
    assert counts[ReactionKind.LOVE] == 0
    assert len(counts) == len(REACTION_OPTIONS)


def test_first_reaction_increments():
    outcome = apply_reaction(create_reaction_counts(), None, "like")
    assert outcome.reactions[ReactionKind.LIKE] == 1
    assert outcome.user_reaction == ReactionKind.LIKE


def test_same_reaction_toggles_off():
    counts = create_reaction_counts({"like": 5})
    outcome = apply_reaction(counts, "like", "like")
    assert outcome.reactions[ReactionKind.LIKE] == 4
    assert outcome.user_reaction is None


def test_switching_moves_the_count():
    counts = create_reaction_counts({"like": 2, "love": 1})
    outcome = apply_reaction(counts, ReactionKind.LIKE, ReactionKind.LOVE)
    assert outcome.reactions[ReactionKind.LIKE] == 1
    assert outcome.reactions[ReactionKind.LOVE] == 2
    assert outcome.user_reaction == ReactionKind.LOVE


def test_clear_with_empty_string_or_none():
    counts = create_reaction_counts({"agree": 1})
    for cleared in ("", None):
        outcome = apply_reaction(counts, "agree", cleared)
        assert outcome.reactions[ReactionKind.AGREE] == 0
        assert outcome.user_reaction is None


def test_clear_without_reaction_is_a_no_op():
    counts = create_reaction_counts({"like": 4})
    outcome = apply_reaction(counts, None, None)
    assert outcome.reactions == counts
    assert outcome.user_reaction is None


def test_counts_never_go_negative():
    """Stale counters at zero must stay at zero when toggling off"""
    outcome = apply_reaction(create_reaction_counts(), "sad", "sad")
    assert outcome.reactions[ReactionKind.SAD] == 0
    assert outcome.user_reaction is None


def test_input_counters_are_not_mutated():
    counts = create_reaction_counts({"like": 1})
    apply_reaction(counts, None, "laugh")
    assert counts[ReactionKind.LAUGH] == 0


def test_at_most_one_kind_changes_upwards():
    counts = create_reaction_counts({kind.value: 1 for kind in ReactionKind})
    current = None
    for requested in ["like", "love", "love", "sad", "", "angry"]:
        outcome = apply_reaction(counts, current, requested)
        grown = [k for k in ReactionKind if outcome.reactions[k] > counts[k]]
        assert len(grown) <= 1
        counts, current = outcome.reactions, outcome.user_reaction
    assert current == ReactionKind.ANGRY


def test_unknown_reaction_is_rejected():
    with pytest.raises(InvalidReactionError):
        apply_reaction(create_reaction_counts(), None, "meh")
    with pytest.raises(FeedsValidationError):
        parse_reaction_kind("LIKE")


def test_count_reactions_ignores_unknown_records():
    counts = count_reactions(
        [{"reaction": "like"}, {"reaction": "like"}, {"reaction": "wow"}, {}, "junk"]
    )
    assert counts[ReactionKind.LIKE] == 2
    assert sum(counts.values()) == 2


def test_reaction_input():
    assert reaction_input(ReactionKind.DISAGREE) == "disagree"
    assert reaction_input(None) == ""


def test_count_reactions_adds_own_reaction_once():
    assert count_reactions([], "like")[ReactionKind.LIKE] == 1
    counted = count_reactions([{"reaction": "like", "subscriber": "me"}], "like")
    assert counted[ReactionKind.LIKE] == 1
    assert count_reactions([{"reaction": "sad"}], "bogus")[ReactionKind.SAD] == 1
    assert sum(count_reactions(None, None).values()) == 0
