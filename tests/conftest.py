"""Shared fixtures for the Secret Santa tests."""

from typing import List

import pytest

from src.participants.models import Participant
from src.storage.database import create_db_engine
from src.storage.repository import SantaRepository
from tests.factories import make_participant


# ============================================================================
# Participant Fixtures
# ============================================================================

@pytest.fixture
def alice() -> Participant:
    return make_participant("Alice", wishlist="Books", address="1 Main St")


@pytest.fixture
def bob() -> Participant:
    return make_participant("Bob")


@pytest.fixture
def carol() -> Participant:
    return make_participant("Carol", wishlist="Tea")


@pytest.fixture
def dave() -> Participant:
    return make_participant("Dave")


@pytest.fixture
def trio(alice, bob, carol) -> List[Participant]:
    return [alice, bob, carol]


@pytest.fixture
def quartet(alice, bob, carol, dave) -> List[Participant]:
    return [alice, bob, carol, dave]


# ============================================================================
# Storage Fixtures
# ============================================================================

@pytest.fixture
def repo(tmp_path) -> SantaRepository:
    """Repository backed by a throwaway SQLite file."""
    return SantaRepository(create_db_engine(tmp_path / "test.db"))
