from __future__ import annotations

import pytest

from tests.helpers import StubResponse


@pytest.fixture
def ok_response() -> StubResponse:
    """A 200 response carrying ``{"id": 1}``."""
    return StubResponse(200, {"id": 1}, headers={"content-type": "application/json"})
