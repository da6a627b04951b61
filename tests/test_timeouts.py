"""
Tests for timeout handling.
"""

import time

import pytest

from modelcascade.timeouts import Deadline, TimeoutConfig


class TestTimeoutConfig:
    """Tests for TimeoutConfig dataclass."""

    def test_default_values(self):
        config = TimeoutConfig()
        assert config.default_attempt_timeout_ms == 30000
        assert config.global_timeout_ms is None

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            TimeoutConfig(default_attempt_timeout_ms=0)
        with pytest.raises(ValueError):
            TimeoutConfig(global_timeout_ms=-1)

    def test_from_dict(self):
        config = TimeoutConfig.from_dict({"global_timeout_ms": 9000})
        assert config.default_attempt_timeout_ms == 30000
        assert config.to_dict() == {
            "default_attempt_timeout_ms": 30000,
            "global_timeout_ms": 9000,
        }


class TestDeadline:
    """Tests for Deadline."""

    def test_unbounded(self):
        deadline = Deadline()
        assert not deadline.bounded
        assert deadline.remaining_ms() is None
        assert deadline.is_expired() is False
        assert deadline.bound(500) == 500
        assert deadline.limits(500) is False

    def test_bound_uses_remaining(self):
        deadline = Deadline(timeout_ms=100)
        assert deadline.bound(10_000) <= 100
        assert deadline.bound(10) == 10
        assert deadline.limits(10_000) is True
        assert deadline.limits(10) is False

    def test_expires(self):
        deadline = Deadline(timeout_ms=10)
        time.sleep(0.02)
        assert deadline.is_expired()
        assert deadline.remaining_ms() == 0.0

    def test_elapsed(self):
        deadline = Deadline(timeout_ms=1000)
        time.sleep(0.05)
        assert 40 <= deadline.elapsed_ms() < 500

    def test_non_positive_rejected(self):
        with pytest.raises(ValueError, match="must be positive"):
            Deadline(timeout_ms=0)
