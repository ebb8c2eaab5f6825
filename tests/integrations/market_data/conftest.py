"""Shared aiohttp mocks for provider client tests"""

from unittest.mock import AsyncMock, MagicMock

import pytest


def make_session(status: int = 200, payload=None, error: Exception = None):
    """Mock ClientSession whose get() yields one canned response"""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)

    context = MagicMock()
    if error is not None:
        context.__aenter__ = AsyncMock(side_effect=error)
    else:
        context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = context
    return session


@pytest.fixture
def mock_session():
    return make_session
