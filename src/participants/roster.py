"""Roster maintenance: manual edits, plus merging of imported participants and pairs.

Imports arrive from two places (the wishlist form export and previous years'
assignment sheets) and people are linked across them by name, since emails
may change from one year to the next.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from src.participants.models import ExclusionPair, Participant, YearData

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class RosterError(ValueError):
    """Raised when a manual roster change is rejected."""


def normalize_email(value: str) -> str:
    """Normalize an email address for use as a participant id."""
    return value.strip().lower()


def _name_key(name: str) -> str:
    return name.strip().lower()


def merge_participants_by_name(
    primary: List[Participant],
    secondary: List[Participant],
) -> List[Participant]:
    """Merge two participant lists, matching people by name.

    Entries from ``primary`` win. When a person appears in both lists, the
    merged entry takes the primary's id, name and email, and falls back to
    the secondary's wishlist, address and exclusions where the primary has
    none.

    Args:
        primary: Higher-priority participants (usually the latest import)
        secondary: Lower-priority participants

    Returns:
        Merged list, ordered by first appearance of each name
    """
    merged: Dict[str, Participant] = {}

    for participant in secondary:
        merged[_name_key(participant.name)] = participant

    for participant in primary:
        key = _name_key(participant.name)
        existing = merged.get(key)

        if existing is None:
            merged[key] = participant
            continue

        merged[key] = Participant(
            id=participant.email,
            name=participant.name,
            email=participant.email,
            wishlist=participant.wishlist or existing.wishlist,
            address=participant.address or existing.address,
            exclusions=participant.exclusions or existing.exclusions,
        )

    return list(merged.values())


def merge_exclusion_pairs(
    primary: List[ExclusionPair],
    secondary: List[ExclusionPair],
) -> List[ExclusionPair]:
    """Concatenate two pair lists, dropping duplicates.

    Two pairs are duplicates when they join the same two ids in either
    order, compared case-insensitively. The first occurrence is kept.
    """
    seen = set()
    merged: List[ExclusionPair] = []

    for pair in [*primary, *secondary]:
        if pair.key in seen:
            continue
        seen.add(pair.key)
        merged.append(pair)

    return merged


def _resolve(
    ref: str,
    by_email: Dict[str, Participant],
    by_name: Dict[str, Participant],
) -> Optional[Participant]:
    return by_email.get(ref.lower()) or by_name.get(_name_key(ref))


def update_exclusion_pair_ids(
    exclusion_pairs: List[ExclusionPair],
    participants: List[Participant],
) -> List[ExclusionPair]:
    """Re-point exclusion pairs at the current participants' ids.

    Each side of a pair is looked up by email first and then by name. Pairs
    where either side no longer matches a participant are dropped.
    """
    by_email = {p.email.lower(): p for p in participants}
    by_name = {_name_key(p.name): p for p in participants}

    updated: List[ExclusionPair] = []
    for pair in exclusion_pairs:
        first = _resolve(pair.participant1_id, by_email, by_name)
        second = _resolve(pair.participant2_id, by_email, by_name)

        if first is None or second is None:
            logger.debug(
                f"Dropping exclusion {pair.participant1_id} / {pair.participant2_id}: "
                "participant not found"
            )
            continue

        updated.append(
            ExclusionPair(
                id=f"{first.id}-{second.id}",
                participant1_id=first.id,
                participant2_id=second.id,
                is_unidirectional=pair.is_unidirectional,
            )
        )

    return updated


def history_exclusion_pairs(year_data: YearData) -> List[ExclusionPair]:
    """Turn a past year's assignments into one-way exclusions.

    Only the exact giver -> recipient direction is blocked, so last year's
    recipient may still give to last year's giver.
    """
    return [
        ExclusionPair(
            id=f"{a.giver_id}-{a.recipient_id}",
            participant1_id=a.giver_id,
            participant2_id=a.recipient_id,
            is_unidirectional=True,
        )
        for a in year_data.assignments
    ]


def _check_contact(name: str, email: str) -> None:
    if not name.strip() or not email.strip():
        raise RosterError("Please enter both name and email")
    if not EMAIL_PATTERN.match(email.strip()):
        raise RosterError(f"Please enter a valid email address, got {email!r}")


def add_participant(
    participants: List[Participant],
    name: str,
    email: str,
    wishlist: Optional[str] = None,
    address: Optional[str] = None,
) -> List[Participant]:
    """Append a participant entered by hand.

    The id is the normalized email, and it must not already be taken.

    Raises:
        RosterError: Missing name or email, malformed email, or duplicate email
    """
    _check_contact(name, email)
    participant_id = normalize_email(email)
    if any(p.id == participant_id for p in participants):
        raise RosterError("A participant with this email already exists")

    participant = Participant(
        id=participant_id,
        name=name.strip(),
        email=participant_id,
        wishlist=wishlist,
        address=address,
    )
    return [*participants, participant]


def update_participant(
    participants: List[Participant],
    participant_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    wishlist: Optional[str] = None,
    address: Optional[str] = None,
) -> List[Participant]:
    """Replace the details of one participant, keeping its id.

    Fields left as ``None`` keep their current value. The id does not follow
    an email change, so exclusion pairs keep pointing at the same person.

    Raises:
        RosterError: Unknown id, or the new name/email is invalid
    """
    current = next((p for p in participants if p.id == participant_id), None)
    if current is None:
        raise RosterError(f"No participant with id {participant_id!r}")

    changes = {
        "name": name,
        "email": email,
        "wishlist": wishlist,
        "address": address,
    }
    updated = current.model_copy(update={k: v for k, v in changes.items() if v is not None})
    _check_contact(updated.name, updated.email)
    updated = updated.model_copy(
        update={"name": updated.name.strip(), "email": normalize_email(updated.email)}
    )

    return [updated if p.id == participant_id else p for p in participants]


def remove_participant(
    participants: List[Participant],
    exclusion_pairs: List[ExclusionPair],
    participant_id: str,
) -> Tuple[List[Participant], List[ExclusionPair]]:
    """Drop a participant together with every exclusion pair naming them."""
    remaining = [p for p in participants if p.id != participant_id]
    if len(remaining) == len(participants):
        raise RosterError(f"No participant with id {participant_id!r}")

    pairs = [
        pair for pair in exclusion_pairs
        if participant_id not in (pair.participant1_id, pair.participant2_id)
    ]
    logger.debug(
        f"Removed {participant_id} and {len(exclusion_pairs) - len(pairs)} exclusion pairs"
    )
    return remaining, pairs


def add_exclusion_pair(
    exclusion_pairs: List[ExclusionPair],
    pair: ExclusionPair,
) -> List[ExclusionPair]:
    """Append a new pair, rejecting any existing pair between the same two people.

    Raises:
        RosterError: Self-exclusion, or a pair between the two already exists
    """
    first, second = pair.key
    if first == second:
        raise RosterError("Cannot exclude a person from themselves")
    if any(existing.key == pair.key for existing in exclusion_pairs):
        raise RosterError("This exclusion pair already exists")
    return [*exclusion_pairs, pair]


def remove_exclusion_pair(
    exclusion_pairs: List[ExclusionPair],
    first_id: str,
    second_id: str,
) -> List[ExclusionPair]:
    """Drop the pair between two participants, in whichever direction it was stored.

    Raises:
        RosterError: No pair joins the two participants
    """
    key = tuple(sorted([first_id.lower(), second_id.lower()]))
    remaining = [pair for pair in exclusion_pairs if pair.key != key]
    if len(remaining) == len(exclusion_pairs):
        raise RosterError("No exclusion pair between these participants")
    return remaining
