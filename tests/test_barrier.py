"""Tests for the per-emit CompletionBarrier."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import pytest

from async_emitter.core.barrier import CompletionBarrier
from async_emitter.core.exceptions import (
    DuplicateCompletionError,
    ExcessCompletionError,
    SynchronousCompletionError,
)


def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll *predicate* until it holds or *timeout* seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestBarrierCounting:
    """Tests for signal counting."""

    def test_completes_after_last_signal(self) -> None:
        """``on_complete`` runs once the expected number of signals arrived."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 2, lambda: calls.append(1))

        barrier.signal()
        assert calls == []
        assert barrier.pending == 1

        barrier.signal()
        assert calls == [1]
        assert barrier.completed

    def test_signal_ignores_arguments(self) -> None:
        """Signals accept and ignore positional and keyword arguments."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 1, lambda: calls.append(1))

        barrier.signal(None, result="ignored")

        assert calls == [1]

    def test_excess_signal_raises(self) -> None:
        """A signal beyond the expected count raises ``ExcessCompletionError``."""
        barrier = CompletionBarrier("evt", 1, lambda: None)
        barrier.signal()

        with pytest.raises(ExcessCompletionError, match="More completion signals"):
            barrier.signal()

    def test_check_after_completion_raises_duplicate(self) -> None:
        """Re-checking a delivered barrier raises ``DuplicateCompletionError``."""
        barrier = CompletionBarrier("evt", 0, lambda: None)
        barrier.check()

        with pytest.raises(DuplicateCompletionError, match="already been invoked"):
            barrier.check()

    def test_check_while_pending_is_noop(self) -> None:
        """Checking with signals outstanding does not complete."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 1, lambda: calls.append(1))

        barrier.check()

        assert calls == []
        assert not barrier.completed

    def test_concurrent_signals_complete_once(self) -> None:
        """Signals from many threads deliver completion exactly once."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 16, lambda: calls.append(1))
        threads = [threading.Thread(target=barrier.signal) for _ in range(16)]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert calls == [1]
        assert barrier.pending == 0

    def test_release_counts_without_same_turn_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Releasing a skipped listener during dispatch completes without a warning."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 1, lambda: calls.append(1), strict=True)

        with barrier.dispatch():
            barrier.release()

        assert calls == [1]
        assert "is not asynchronous" not in caplog.text


class TestBarrierDispatch:
    """Tests for the dispatch window."""

    def test_zero_expected_completes_on_dispatch_exit(self) -> None:
        """With nothing to wait for, leaving dispatch delivers completion."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 0, lambda: calls.append(1))

        with barrier.dispatch():
            assert calls == []

        assert calls == [1]

    def test_same_thread_signal_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """A signal from the dispatching thread is logged as same-turn."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 1, lambda: calls.append(1))

        with barrier.dispatch():
            barrier.signal()

        assert "is not asynchronous" in caplog.text
        assert calls == [1]

    def test_same_thread_signal_raises_in_strict_mode(self) -> None:
        """Strict barriers reject same-turn signals without counting them."""
        barrier = CompletionBarrier("evt", 1, lambda: None, strict=True)

        with barrier.dispatch(), pytest.raises(SynchronousCompletionError):
            barrier.signal()

        assert barrier.pending == 1

    def test_other_thread_signal_during_dispatch_is_allowed(self) -> None:
        """Signals from another thread are not same-turn, even in strict mode."""
        calls: list[int] = []
        barrier = CompletionBarrier("evt", 1, lambda: calls.append(1), strict=True)

        with barrier.dispatch():
            worker = threading.Thread(target=barrier.signal)
            worker.start()
            worker.join()

        assert calls == [1]


class TestBarrierWatchdog:
    """Tests for the debug hang detector."""

    def test_reports_uncompleted_emit(self, caplog: pytest.LogCaptureFixture) -> None:
        """An emit still pending after the timeout is reported."""
        barrier = CompletionBarrier("stuck", 1, lambda: None)

        barrier.start_watchdog(0.05)

        assert _wait_for(lambda: "has not completed" in caplog.text)
        assert "'stuck'" in caplog.text

    def test_completed_emit_is_not_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        """Completion cancels the pending hang report."""
        barrier = CompletionBarrier("fine", 1, lambda: None)
        barrier.start_watchdog(0.05)

        barrier.signal()
        time.sleep(0.15)

        assert "has not completed" not in caplog.text
