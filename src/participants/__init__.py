"""Participants module for roster data and roster maintenance."""

from src.participants.models import (
    Assignment,
    ExclusionPair,
    Participant,
    YearData,
)
from src.participants.roster import (
    RosterError,
    add_exclusion_pair,
    add_participant,
    history_exclusion_pairs,
    merge_exclusion_pairs,
    merge_participants_by_name,
    normalize_email,
    remove_exclusion_pair,
    remove_participant,
    update_exclusion_pair_ids,
    update_participant,
)

__all__ = [
    "Assignment",
    "ExclusionPair",
    "Participant",
    "RosterError",
    "YearData",
    "add_exclusion_pair",
    "add_participant",
    "history_exclusion_pairs",
    "merge_exclusion_pairs",
    "merge_participants_by_name",
    "normalize_email",
    "remove_exclusion_pair",
    "remove_participant",
    "update_exclusion_pair_ids",
    "update_participant",
]
