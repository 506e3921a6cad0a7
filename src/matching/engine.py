"""Constrained random matching engine.

Builds a giver -> recipient assignment where everyone gives exactly once and
receives exactly once, nobody draws themselves, exclusion pairs are honored
and pairings from the last few years are not repeated.

Each attempt shuffles the participants into a candidate pool and lets the
givers, in input order, take the first eligible recipient. A giver left with
no eligible recipient sinks the whole attempt and the next attempt starts
from a fresh shuffle.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from src.participants.models import Assignment, ExclusionPair, Participant, YearData

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 1000
DEFAULT_YEARS_TO_AVOID = 2


class MatchingError(Exception):
    """Base class for expected matching failures."""


class InsufficientParticipantsError(MatchingError):
    """Raised when there are fewer than two participants."""

    def __init__(self, count: int):
        self.count = count
        super().__init__("Need at least 2 participants for Secret Santa")


class InfeasibleMatchingError(MatchingError):
    """Raised when no valid assignment was found within the attempt budget."""

    def __init__(self, max_attempts: int):
        self.max_attempts = max_attempts
        super().__init__(
            f"Could not generate valid Secret Santa assignments after {max_attempts} "
            "attempts. Try removing some exclusion pairs or checking historical data "
            "constraints."
        )


class MatchStrategy(str, Enum):
    """How a single attempt searches for a complete assignment."""
    RESTART = "restart"      # First eligible recipient, give up on dead end
    BACKTRACK = "backtrack"  # Undo earlier edges on dead end


@dataclass
class MatchOutcome:
    """Result of a generation run: either assignments or an error."""
    assignments: List[Assignment] = field(default_factory=list)
    error: Optional[MatchingError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> List[Assignment]:
        """Return the assignments, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.assignments


def is_forbidden(
    giver_id: str,
    recipient_id: str,
    exclusion_pairs: Sequence[ExclusionPair],
) -> bool:
    """Check whether any exclusion pair blocks ``giver_id -> recipient_id``."""
    for pair in exclusion_pairs:
        if pair.is_unidirectional:
            if pair.participant1_id == giver_id and pair.participant2_id == recipient_id:
                return True
        elif {pair.participant1_id, pair.participant2_id} == {giver_id, recipient_id}:
            return True
    return False


def is_recent_repeat(
    giver_id: str,
    recipient_id: str,
    historical_data: Sequence[YearData],
    current_year: int,
    years_to_avoid: int = DEFAULT_YEARS_TO_AVOID,
) -> bool:
    """Check whether this exact pairing happened within the lookback window.

    Only years strictly before ``current_year`` and no more than
    ``years_to_avoid`` years back are considered.
    """
    return any(
        0 < current_year - year_data.year <= years_to_avoid
        and year_data.has_edge(giver_id, recipient_id)
        for year_data in historical_data
    )


def is_complete_bijection(
    assignments: Sequence[Assignment],
    participants: Sequence[Participant],
) -> bool:
    """Check that everyone gives exactly once and receives exactly once."""
    ids = {p.id for p in participants}

    def covers_once(side: List[str]) -> bool:
        return len(side) == len(ids) and set(side) == ids

    return covers_once([a.giver_id for a in assignments]) and covers_once(
        [a.recipient_id for a in assignments]
    )


class MatchingEngine:
    """Generates Secret Santa assignments under exclusion and history constraints."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        years_to_avoid: int = DEFAULT_YEARS_TO_AVOID,
        rng: Optional[random.Random] = None,
        strategy: MatchStrategy = MatchStrategy.RESTART,
    ):
        """Initialize the engine.

        Args:
            max_attempts: Number of shuffles to try before giving up
            years_to_avoid: How many previous years count as a recent repeat
            rng: Random source for shuffling. Defaults to the system entropy source.
            strategy: Search strategy used within a single attempt
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.years_to_avoid = years_to_avoid
        self.rng = rng if rng is not None else random.SystemRandom()
        self.strategy = MatchStrategy(strategy)

    def attempt_generate(
        self,
        participants: Sequence[Participant],
        exclusion_pairs: Sequence[ExclusionPair],
        historical_data: Sequence[YearData],
        current_year: int,
    ) -> MatchOutcome:
        """Generate assignments, reporting expected failures in the outcome."""
        if len(participants) < 2:
            return MatchOutcome(error=InsufficientParticipantsError(len(participants)))

        for attempt in range(1, self.max_attempts + 1):
            pool = list(participants)
            self.rng.shuffle(pool)

            if self.strategy == MatchStrategy.BACKTRACK:
                edges = self._backtrack(participants, pool, exclusion_pairs, historical_data, current_year)
                if edges is None:
                    # A failed exhaustive search will fail again on any reshuffle
                    logger.debug("Backtracking search found no valid assignment")
                    return MatchOutcome(error=InfeasibleMatchingError(attempt), attempts=attempt)
            else:
                edges = self._first_fit(participants, pool, exclusion_pairs, historical_data, current_year)

            if edges is not None:
                logger.debug(f"Generated {len(edges)} assignments on attempt {attempt}")
                return MatchOutcome(assignments=edges, attempts=attempt)

        logger.debug(f"No valid assignment after {self.max_attempts} attempts")
        return MatchOutcome(
            error=InfeasibleMatchingError(self.max_attempts),
            attempts=self.max_attempts,
        )

    def generate(
        self,
        participants: Sequence[Participant],
        exclusion_pairs: Sequence[ExclusionPair],
        historical_data: Sequence[YearData],
        current_year: int,
    ) -> List[Assignment]:
        """Generate assignments.

        Raises:
            InsufficientParticipantsError: Fewer than two participants
            InfeasibleMatchingError: No valid assignment within the attempt budget
        """
        return self.attempt_generate(
            participants, exclusion_pairs, historical_data, current_year
        ).unwrap()

    def _is_eligible(
        self,
        giver: Participant,
        recipient: Participant,
        exclusion_pairs: Sequence[ExclusionPair],
        historical_data: Sequence[YearData],
        current_year: int,
    ) -> bool:
        if giver.id == recipient.id:
            return False
        if is_forbidden(giver.id, recipient.id, exclusion_pairs):
            return False
        return not is_recent_repeat(
            giver.id, recipient.id, historical_data, current_year, self.years_to_avoid
        )

    def _first_fit(
        self,
        givers: Sequence[Participant],
        pool: List[Participant],
        exclusion_pairs: Sequence[ExclusionPair],
        historical_data: Sequence[YearData],
        current_year: int,
    ) -> Optional[List[Assignment]]:
        """Single pass; returns None when some giver has no eligible recipient."""
        used: Set[str] = set()
        edges: List[Assignment] = []

        for giver in givers:
            for recipient in pool:
                if recipient.id in used:
                    continue
                if self._is_eligible(giver, recipient, exclusion_pairs, historical_data, current_year):
                    edges.append(Assignment.between(giver, recipient))
                    used.add(recipient.id)
                    break
            else:
                return None

        return edges

    def _backtrack(
        self,
        givers: Sequence[Participant],
        pool: List[Participant],
        exclusion_pairs: Sequence[ExclusionPair],
        historical_data: Sequence[YearData],
        current_year: int,
    ) -> Optional[List[Assignment]]:
        """Depth-first search over the shuffled pool.

        The search is exhaustive, so ``None`` means no valid assignment
        exists at all. Givers with the fewest candidates are placed first;
        the returned edges still follow input order.
        """
        candidates: Dict[str, List[Participant]] = {
            giver.id: [
                recipient for recipient in pool
                if self._is_eligible(giver, recipient, exclusion_pairs, historical_data, current_year)
            ]
            for giver in givers
        }
        if not all(candidates.values()):
            return None
        receivable = {r.id for options in candidates.values() for r in options}
        if receivable != {p.id for p in pool}:
            return None

        order = sorted(givers, key=lambda g: len(candidates[g.id]))
        used: Set[str] = set()
        chosen: Dict[str, Participant] = {}

        def place(index: int) -> bool:
            if index == len(order):
                return True
            giver = order[index]
            for recipient in candidates[giver.id]:
                if recipient.id in used:
                    continue
                chosen[giver.id] = recipient
                used.add(recipient.id)
                if place(index + 1):
                    return True
                used.discard(recipient.id)
            chosen.pop(giver.id, None)
            return False

        if not place(0):
            return None
        return [Assignment.between(giver, chosen[giver.id]) for giver in givers]


def attempt_generate(
    participants: Sequence[Participant],
    exclusion_pairs: Sequence[ExclusionPair],
    historical_data: Sequence[YearData],
    current_year: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    years_to_avoid: int = DEFAULT_YEARS_TO_AVOID,
    rng: Optional[random.Random] = None,
    strategy: MatchStrategy = MatchStrategy.RESTART,
) -> MatchOutcome:
    """Generate assignments and return a :class:`MatchOutcome`."""
    engine = MatchingEngine(
        max_attempts=max_attempts,
        years_to_avoid=years_to_avoid,
        rng=rng,
        strategy=strategy,
    )
    return engine.attempt_generate(participants, exclusion_pairs, historical_data, current_year)


def generate(
    participants: Sequence[Participant],
    exclusion_pairs: Sequence[ExclusionPair],
    historical_data: Sequence[YearData],
    current_year: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    years_to_avoid: int = DEFAULT_YEARS_TO_AVOID,
    rng: Optional[random.Random] = None,
    strategy: MatchStrategy = MatchStrategy.RESTART,
) -> List[Assignment]:
    """Generate assignments, raising a :class:`MatchingError` on failure."""
    return attempt_generate(
        participants,
        exclusion_pairs,
        historical_data,
        current_year,
        max_attempts,
        years_to_avoid=years_to_avoid,
        rng=rng,
        strategy=strategy,
    ).unwrap()
