"""Shared pytest fixtures for every package."""
from __future__ import annotations

import pytest

from heartbeat import set_default_engine
from heartbeat_fsm import set_default_registry


@pytest.fixture(autouse=True)
def _isolate_defaults():
    """Give every test a fresh process-wide engine and registry."""
    set_default_engine(None)
    set_default_registry(None)
    yield
    set_default_engine(None)
    set_default_registry(None)
