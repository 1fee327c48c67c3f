"""Participant deduplication transform.

This module collapses participant records that denote the same person.
Records on one platform match by id; records on different platforms
match by normalized display name.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, TypeVar

from core.constants import HINGE_USER_ID
from core.types import Participant

_T = TypeVar("_T")


def deduplicate_participants(participants: Iterable[Participant]) -> list[Participant]:
    """Merge duplicate participants.

    Pairwise merging repeats until no two survivors match, so chains of
    matches across platforms collapse into one record.

    Args:
        participants: Participants to evaluate.

    Returns:
        Survivors in first-occurrence order.
    """
    survivors = list(participants)
    while True:
        merged = _merge_pass(survivors)
        if len(merged) == len(survivors):
            return merged
        survivors = merged


def is_same_participant(left: Participant, right: Participant) -> bool:
    """Return whether two records denote the same person."""
    if left.platform == right.platform:
        return left.participant_id == right.participant_id
    left_name = normalize_name(left.name)
    return bool(left_name) and left_name == normalize_name(right.name)


def merge_participants(primary: Participant, secondary: Participant) -> Participant:
    """Merge a later record into the first-seen one.

    Args:
        primary: First-seen record; its id and platform win.
        secondary: Record being folded in.

    Returns:
        Merged participant.
    """
    attributes = dict(primary.attributes)
    for key, value in secondary.attributes.items():
        attributes.setdefault(key, value)
    return replace(
        primary,
        is_user=primary.is_user or secondary.is_user,
        name=_first_present(primary.name, secondary.name),
        age=_first_present(primary.age, secondary.age),
        gender_label=_first_present(primary.gender_label, secondary.gender_label),
        location=_first_present(primary.location, secondary.location),
        traits=tuple(dict.fromkeys([*primary.traits, *secondary.traits])),
        prompts=primary.prompts + secondary.prompts,
        attributes=attributes,
        raw=primary.raw,
    )


def create_canonical_id(participant: Participant) -> str:
    """Return the cross-platform id of a participant."""
    if participant.is_user:
        return HINGE_USER_ID
    return f"{participant.platform}_{participant.participant_id}"


def normalize_name(name: str | None) -> str:
    """Lowercase a name and collapse its whitespace."""
    if not name:
        return ""
    return " ".join(name.lower().split())


def _merge_pass(participants: list[Participant]) -> list[Participant]:
    survivors: list[Participant] = []
    for participant in participants:
        for index, survivor in enumerate(survivors):
            if is_same_participant(survivor, participant):
                survivors[index] = merge_participants(survivor, participant)
                break
        else:
            survivors.append(participant)
    return survivors


def _first_present(first: _T | None, second: _T | None) -> _T | None:
    return first if first is not None else second
