"""pytest configuration for the Trugen plugin test suite.

Automatically suppresses ``asyncio.sleep`` delays inside the conversation
poller so wait-for-completion tests run instantly.
"""

from __future__ import annotations

import pytest

from trugen.testing import patch_poll_sleep


@pytest.fixture(autouse=True)
def _no_poll_sleep():
    with patch_poll_sleep() as mock_sleep:
        yield mock_sleep
