"""Repository for participants, exclusion pairs and archived years.

Participants and exclusion pairs are working data for the upcoming draw and
are replaced wholesale on save. Archived years are permanent history and
are only touched one year at a time.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.participants.models import Assignment, ExclusionPair, Participant, YearData
from src.storage.database import init_db, session_scope
from src.storage.models import (
    ExclusionPairRow,
    ParticipantRow,
    YearAssignment,
    YearRecord,
)

logger = logging.getLogger(__name__)


def _to_year_data(record: YearRecord) -> YearData:
    return YearData(
        year=record.year,
        saved_at=record.saved_at,
        assignments=[
            Assignment(
                giver_id=row.giver_id,
                giver_name=row.giver_name,
                giver_email=row.giver_email,
                recipient_id=row.recipient_id,
                recipient_name=row.recipient_name,
                recipient_email=row.recipient_email,
                recipient_wishlist=row.recipient_wishlist,
                recipient_address=row.recipient_address,
            )
            for row in record.assignments
        ],
    )


class SantaRepository:
    """SQLite-backed store for the organizer's data."""

    def __init__(self, engine: Optional[Engine] = None):
        """Initialize the repository and make sure the tables exist.

        Args:
            engine: SQLAlchemy engine. Defaults to the shared application engine.
        """
        self.engine = engine
        init_db(engine)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def load_historical_data(self) -> List[YearData]:
        """Load all archived years, most recent first."""
        with session_scope(self.engine) as session:
            records = session.scalars(
                select(YearRecord).order_by(YearRecord.year.desc())
            ).all()
            return [_to_year_data(r) for r in records]

    def get_year_data(self, year: int) -> Optional[YearData]:
        """Get the archived assignments for one year, if any."""
        with session_scope(self.engine) as session:
            record = session.get(YearRecord, year)
            return _to_year_data(record) if record else None

    def save_year_data(self, year_data: YearData) -> None:
        """Archive a year's assignments, replacing any existing record for that year."""
        try:
            with session_scope(self.engine) as session:
                session.execute(delete(YearAssignment).where(YearAssignment.year == year_data.year))
                session.execute(delete(YearRecord).where(YearRecord.year == year_data.year))

                session.add(
                    YearRecord(
                        year=year_data.year,
                        saved_at=year_data.saved_at,
                        assignments=[
                            YearAssignment(position=i, **a.model_dump())
                            for i, a in enumerate(year_data.assignments)
                        ],
                    )
                )
        except SQLAlchemyError as e:
            logger.error(f"Error saving year data for {year_data.year}: {e}")
            raise

        logger.info(f"Saved {len(year_data.assignments)} assignments for {year_data.year}")

    def delete_year_data(self, year: int) -> bool:
        """Delete an archived year.

        Returns:
            True if the year was deleted, False if it didn't exist.
        """
        try:
            with session_scope(self.engine) as session:
                record = session.get(YearRecord, year)
                if record is None:
                    return False
                session.delete(record)
        except SQLAlchemyError as e:
            logger.error(f"Error deleting year data for {year}: {e}")
            raise
        return True

    # ------------------------------------------------------------------
    # Working data
    # ------------------------------------------------------------------

    def load_participants(self) -> List[Participant]:
        with session_scope(self.engine) as session:
            rows = session.scalars(select(ParticipantRow).order_by(ParticipantRow.position)).all()
            return [
                Participant(
                    id=row.id,
                    name=row.name,
                    email=row.email,
                    wishlist=row.wishlist,
                    address=row.address,
                    exclusions=row.exclusions,
                )
                for row in rows
            ]

    def save_participants(self, participants: List[Participant]) -> None:
        try:
            with session_scope(self.engine) as session:
                session.execute(delete(ParticipantRow))
                session.add_all(
                    ParticipantRow(position=i, **p.model_dump())
                    for i, p in enumerate(participants)
                )
        except SQLAlchemyError as e:
            logger.error(f"Error saving participants: {e}")
            raise

    def load_exclusion_pairs(self) -> List[ExclusionPair]:
        with session_scope(self.engine) as session:
            rows = session.scalars(select(ExclusionPairRow).order_by(ExclusionPairRow.row_id)).all()
            return [
                ExclusionPair(
                    id=row.id,
                    participant1_id=row.participant1_id,
                    participant2_id=row.participant2_id,
                    is_unidirectional=row.is_unidirectional,
                )
                for row in rows
            ]

    def save_exclusion_pairs(self, exclusion_pairs: List[ExclusionPair]) -> None:
        try:
            with session_scope(self.engine) as session:
                session.execute(delete(ExclusionPairRow))
                session.add_all(ExclusionPairRow(**pair.model_dump()) for pair in exclusion_pairs)
        except SQLAlchemyError as e:
            logger.error(f"Error saving exclusion pairs: {e}")
            raise

    def clear_temporary_data(self) -> None:
        """Clear participants and exclusion pairs. History is kept."""
        try:
            with session_scope(self.engine) as session:
                session.execute(delete(ParticipantRow))
                session.execute(delete(ExclusionPairRow))
        except SQLAlchemyError as e:
            logger.error(f"Error clearing temporary data: {e}")
            raise
