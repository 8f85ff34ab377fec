# feeds/services/reactions.py
"""
Reaction set and single-choice reaction toggling.

A person holds at most one reaction per post or comment. Each slot is a
two-state machine (no reaction / reaction = K); the transition table below is
the only place counters change, so the floor at zero and the mutual exclusion
of kinds hold for every caller.
"""

from typing import Dict, Iterable, Mapping, NamedTuple, Optional, Union

from feeds.core.decorator import InvalidReactionError
from feeds.schemas.reactions import REACTION_OPTIONS, ReactionKind

ReactionCounts = Dict[ReactionKind, int]

_KINDS_BY_VALUE = {option.id.value: option.id for option in REACTION_OPTIONS}


class ReactionOutcome(NamedTuple):
    reactions: ReactionCounts
    user_reaction: Optional[ReactionKind]


class _Transition(NamedTuple):
    decrement: Optional[ReactionKind]
    increment: Optional[ReactionKind]
    next_reaction: Optional[ReactionKind]


def is_reaction_kind(value) -> bool:
    if isinstance(value, ReactionKind):
        return True
    return isinstance(value, str) and value in _KINDS_BY_VALUE


def parse_reaction_kind(value: Union[ReactionKind, str, None]) -> Optional[ReactionKind]:
    """Map a requested reaction to a kind; None and "" mean "clear"."""
    if value is None or value == "":
        return None
    if isinstance(value, ReactionKind):
        return value
    if isinstance(value, str) and value in _KINDS_BY_VALUE:
        return _KINDS_BY_VALUE[value]
    raise InvalidReactionError(f"Unknown reaction: {value!r}")


def create_reaction_counts(preset: Optional[Mapping] = None) -> ReactionCounts:
    """Build counters holding every kind, in display order.

    Unknown keys in ``preset`` are ignored; missing kinds default to 0 and
    negative or unparseable values are clamped to 0.
    """
    preset = preset or {}
    counts: ReactionCounts = {}
    for option in REACTION_OPTIONS:
        # Keys may be ReactionKind members or their plain string values
        if option.id in preset:
            value = preset[option.id]
        else:
            value = preset.get(option.id.value, 0)
        try:
            counts[option.id] = max(0, int(value or 0))
        except (TypeError, ValueError):
            counts[option.id] = 0
    return counts


def count_reactions(
    records: Optional[Iterable[Mapping]] = None, my_reaction=None
) -> ReactionCounts:
    """Aggregate raw reaction records ({"reaction": "like", ...}) into counters.

    ``my_reaction`` is the caller's own reaction. It adds one to its kind unless
    a record carrying a ``subscriber`` already counts it.
    """
    records = [record for record in records or [] if isinstance(record, Mapping)]
    counts = create_reaction_counts()
    for record in records:
        kind = record.get("reaction")
        if is_reaction_kind(kind):
            counts[_as_kind(kind)] += 1

    if is_reaction_kind(my_reaction):
        mine = _as_kind(my_reaction)
        already_counted = any(
            record.get("subscriber")
            and is_reaction_kind(record.get("reaction"))
            and _as_kind(record.get("reaction")) == mine
            for record in records
        )
        if not already_counted:
            counts[mine] += 1
    return counts


def _as_kind(value) -> ReactionKind:
    if isinstance(value, ReactionKind):
        return value
    return _KINDS_BY_VALUE[value]


def _transition(
    current: Optional[ReactionKind], requested: Optional[ReactionKind]
) -> _Transition:
    # no reaction -> clear: nothing to do
    if current is None and requested is None:
        return _Transition(None, None, None)
    # no reaction -> K
    if current is None:
        return _Transition(None, requested, requested)
    # K -> K, or K -> clear: toggle off
    if requested is None or requested == current:
        return _Transition(current, None, None)
    # K1 -> K2: switch
    return _Transition(current, requested, requested)


def apply_reaction(
    counts: Mapping,
    current_reaction: Union[ReactionKind, str, None],
    reaction: Union[ReactionKind, str, None],
) -> ReactionOutcome:
    """Toggle ``reaction`` against the caller's current reaction.

    Returns fresh counters and the reaction the caller now holds. Send the
    returned ``user_reaction`` to the network, not the requested one: asking
    for the kind you already hold yields ``None``.
    """
    current = parse_reaction_kind(current_reaction)
    requested = parse_reaction_kind(reaction)
    step = _transition(current, requested)

    updated = create_reaction_counts(counts)
    if step.decrement is not None:
        updated[step.decrement] = max(0, updated[step.decrement] - 1)
    if step.increment is not None:
        updated[step.increment] += 1

    return ReactionOutcome(reactions=updated, user_reaction=step.next_reaction)


def reaction_input(reaction: Optional[ReactionKind]) -> str:
    """Wire value for a reaction: the kind name, or "" to clear."""
    return reaction.value if reaction is not None else ""
