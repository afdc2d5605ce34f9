"""
Tests for bounded convergence polling.
"""

import pytest
from unittest.mock import Mock

from xmaint.exceptions import ConvergenceTimeoutError, FleetAPIError, UnreachableError
from xmaint.maintenance.polling import poll_until


def _probe(*values):
    """Probe returning the given values in order (exceptions are raised)"""
    iterator = iter(values)

    def probe():
        value = next(iterator)
        if isinstance(value, Exception):
            raise value
        return value
    return probe


class TestPollUntil:

    def test_converges_on_first_probe_without_sleeping(self, no_sleep):
        result = poll_until(_probe(0), lambda v: v == 0, "queue to drain",
                            interval=5.0, max_retries=3, sleep=no_sleep)

        assert result.value == 0
        assert result.attempts == 1
        assert result.elapsed == 0.0
        assert no_sleep.calls == []

    def test_converges_after_retries(self, no_sleep):
        result = poll_until(_probe(12, 4, 0), lambda v: v == 0, "queue to drain",
                            interval=5.0, max_retries=3, sleep=no_sleep)

        assert result.attempts == 3
        assert result.elapsed == 10.0
        assert no_sleep.calls == [5.0, 5.0]

    def test_timeout_counts_intervals(self, no_sleep):
        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poll_until(lambda: 7, lambda v: v == 0, "queue to drain",
                       interval=5.0, max_retries=3, sleep=no_sleep)

        error = exc_info.value
        assert error.attempts == 4
        assert error.elapsed == 15.0
        assert error.last_observed == 7
        assert no_sleep.calls == [5.0, 5.0, 5.0]
        assert "queue to drain" in str(error)

    def test_zero_retries_probes_once(self, no_sleep):
        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poll_until(lambda: 1, lambda v: v == 0, "x", interval=5.0, max_retries=0, sleep=no_sleep)

        assert exc_info.value.attempts == 1
        assert no_sleep.calls == []

    def test_unreachable_probe_counts_as_failed_attempt(self, no_sleep):
        probe = _probe(UnreachableError('n1'), 0)

        result = poll_until(probe, lambda v: v == 0, "n1 to respond",
                            interval=5.0, max_retries=3, sleep=no_sleep)

        assert result.attempts == 2
        assert no_sleep.calls == [5.0]

    def test_unreachable_until_timeout_reports_last_error(self, no_sleep):
        def probe():
            raise UnreachableError('n1', "connection refused")

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poll_until(probe, lambda v: True, "n1 to respond", interval=1.0, max_retries=2, sleep=no_sleep)

        assert "connection refused" in exc_info.value.last_observed

    def test_other_errors_propagate(self, no_sleep):
        with pytest.raises(FleetAPIError):
            poll_until(_probe(FleetAPIError("bad request", 400)), lambda v: True, "x",
                       interval=5.0, max_retries=3, sleep=no_sleep)

    def test_on_attempt_sees_unconverged_values(self, no_sleep):
        on_attempt = Mock()

        poll_until(_probe(3, 1, 0), lambda v: v == 0, "copies to move",
                   interval=5.0, max_retries=5, sleep=no_sleep, on_attempt=on_attempt)

        assert [c.args for c in on_attempt.call_args_list] == [(1, 3), (2, 1)]
