"""
Shared pytest fixtures for tournagen tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the exhaustive size sweeps
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournagen.models import Participant
from tournagen.formats import create_default_registry


def make_participants(count, prefix='p'):
    """Participants p1..pN named "Player N" with no explicit seed."""
    return [Participant(id=f"{prefix}{i}", name=f"Player {i}") for i in range(1, count + 1)]


@pytest.fixture
def participants():
    """Eight unseeded participants."""
    return make_participants(8)


@pytest.fixture
def drivers():
    """Four drivers in two teams."""
    return [
        Participant(id='ver', name='Verstappen', team='Red Bull'),
        Participant(id='per', name='Perez', team='Red Bull'),
        Participant(id='ham', name='Hamilton', team='Mercedes'),
        Participant(id='rus', name='Russell', team='Mercedes'),
    ]


@pytest.fixture
def registry():
    """A fresh registry per test; never shared."""
    return create_default_registry()
