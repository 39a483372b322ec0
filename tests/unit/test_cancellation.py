"""
Unit tests for CancellationToken.
"""

import pytest

from dexarb.core.cancellation import CancellationToken
from dexarb.core.errors import PassCancelled


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_fresh_token(self) -> None:
        token = CancellationToken()

        assert not token.cancelled
        assert not token.committed
        token.raise_if_cancelled()

    def test_cancel_before_commit(self) -> None:
        token = CancellationToken()

        assert token.cancel()
        assert token.cancelled
        assert not token.commit()
        assert not token.committed

        with pytest.raises(PassCancelled):
            token.raise_if_cancelled()

    def test_cancel_after_commit_refused(self) -> None:
        token = CancellationToken()

        assert token.commit()
        assert not token.cancel()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_repeated_calls(self) -> None:
        token = CancellationToken()

        assert token.commit()
        assert token.commit()

        other = CancellationToken()
        assert other.cancel()
        assert other.cancel()
