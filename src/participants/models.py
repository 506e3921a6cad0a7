"""Pydantic models for participants, exclusions and assignments."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Participant(BaseModel):
    """A person who gives one gift and receives one gift."""

    id: str = Field(..., description="Stable identifier, normally the lowercased email")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    wishlist: Optional[str] = Field(None, description="Free-text wishlist")
    address: Optional[str] = Field(None, description="Where the gift should be sent")
    exclusions: Optional[str] = Field(
        None, description="Raw exclusions text as typed into the wishlist form"
    )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class ExclusionPair(BaseModel):
    """A forbidden giver -> recipient pairing.

    Bidirectional pairs block both directions. Unidirectional pairs only block
    ``participant1_id -> participant2_id`` and are used for pairings that
    already happened in a previous year.
    """

    id: str
    participant1_id: str
    participant2_id: str
    is_unidirectional: bool = Field(False, description="Block only participant1 -> participant2")

    @property
    def key(self) -> tuple[str, str]:
        """Case-insensitive unordered key for duplicate detection."""
        first, second = sorted([self.participant1_id.lower(), self.participant2_id.lower()])
        return first, second


class Assignment(BaseModel):
    """One resolved giver -> recipient edge."""

    giver_id: str
    giver_name: str
    giver_email: str
    recipient_id: str
    recipient_name: str
    recipient_email: str
    recipient_wishlist: Optional[str] = None
    recipient_address: Optional[str] = None

    @classmethod
    def between(cls, giver: Participant, recipient: Participant) -> "Assignment":
        """Build an assignment carrying the recipient's wishlist and address."""
        return cls(
            giver_id=giver.id,
            giver_name=giver.name,
            giver_email=giver.email,
            recipient_id=recipient.id,
            recipient_name=recipient.name,
            recipient_email=recipient.email,
            recipient_wishlist=recipient.wishlist,
            recipient_address=recipient.address,
        )


class YearData(BaseModel):
    """Archived assignments for one year."""

    year: int
    assignments: list[Assignment] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=datetime.now)

    def has_edge(self, giver_id: str, recipient_id: str) -> bool:
        """Check whether this year paired ``giver_id`` with ``recipient_id``."""
        return any(
            a.giver_id == giver_id and a.recipient_id == recipient_id
            for a in self.assignments
        )
