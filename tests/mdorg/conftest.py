"""Shared fixtures and utilities for Markdown to Org tests."""

from typing import Callable, List

import pytest

from mdorg.conversion_session import ConversionSession
from mdorg.mdorg_rule_engine import MdOrgRuleEngine
from mdorg.mdorg_session_manager import MdOrgSessionManager


def run_session(chunks: List[str], fence_min_ticks: int = 3) -> List[str]:
    """Feed chunks through a fresh session and return every slice it produced."""
    session = ConversionSession("test", MdOrgRuleEngine(fence_min_ticks))
    outputs = [session.feed(chunk) for chunk in chunks]
    outputs.append(session.finalize())
    return outputs


@pytest.fixture
def engine():
    """Fixture providing a rule engine with default settings."""
    return MdOrgRuleEngine()


@pytest.fixture
def session():
    """Fixture providing a fresh conversion session."""
    return ConversionSession("session-1")


@pytest.fixture
def manager():
    """Fixture providing a session manager with default settings."""
    return MdOrgSessionManager()


@pytest.fixture
def stream_converter() -> Callable[[List[str]], str]:
    """Fixture providing a function that converts a list of chunks as a stream."""
    def convert(chunks: List[str]) -> str:
        return "".join(run_session(chunks))

    return convert
