"""Shared test helpers for resilient_fetch.

Transport fakes live here so test modules and fixtures can share them without
touching the network.
"""

from __future__ import annotations

from tests.helpers.fakes import ScriptedTransport, StubResponse

__all__ = ["ScriptedTransport", "StubResponse"]
