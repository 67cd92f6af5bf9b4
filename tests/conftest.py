"""
Pytest configuration for the toolagent test suite.

Async tests use the ``anyio`` marker and run on the asyncio backend only.
"""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
