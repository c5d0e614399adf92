"""
Shared fixtures for the slot engine tests.
"""

import pytest

from factories import make_config, make_service


@pytest.fixture
def default_service():
    """Monday 09:00-12:00, 60 minute sessions, 15 minute buffer, no sessions."""
    return make_service(make_config())
