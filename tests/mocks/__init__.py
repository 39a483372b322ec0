"""Mock implementations for testing."""

from tests.mocks.pair import FailingPair, MockPair, make_observation


__all__ = [
    "FailingPair",
    "MockPair",
    "make_observation",
]
