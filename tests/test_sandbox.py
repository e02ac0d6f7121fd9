"""Tests for the sandboxed strategy runner.

These spawn real child interpreters running ``harness.py`` on short series,
so each test exercises the full process boundary.
"""

import asyncio
import os
import signal
import sys
from datetime import timedelta

import pytest

from app.errors import ExecutionFailure
from app.market.generator import EPOCH, generate_series
from app.market.models import MarketSeries
from app.sandbox.models import (
    NoSignal,
    Signal,
    SignalStep,
    StepError,
    step_from_dict,
    to_signal,
)
from app.sandbox.runner import StrategyExecutor, SubprocessExecutor, parse_step_results


# ── Helpers ──────────────────────────────────────────────────────────────


def _series(length=60):
    return generate_series(length, 12345)


def _executor(**kwargs):
    kwargs.setdefault("timeout_seconds", 30.0)
    return SubprocessExecutor(python=sys.executable, **kwargs)


BUY_ALWAYS = """
def strategy(prices, timestamps):
    return "buy"
"""


# ── Step models ──────────────────────────────────────────────────────────


class TestStepModels:

    def test_decode_each_kind(self):
        assert step_from_dict({"kind": "signal", "value": "sell"}) == SignalStep(Signal.SELL)
        assert step_from_dict({"kind": "none"}) == NoSignal()
        assert step_from_dict({"kind": "error", "detail": "boom"}) == StepError("boom")

    def test_decode_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            step_from_dict({"kind": "maybe"})

    def test_decode_rejects_bad_signal(self):
        with pytest.raises(ValueError):
            step_from_dict({"kind": "signal", "value": "hold"})

    def test_to_signal_collapses_errors(self):
        assert to_signal(SignalStep(Signal.BUY)) is Signal.BUY
        assert to_signal(NoSignal()) is None
        assert to_signal(StepError("x")) is None


class TestParseStepResults:

    def test_parses_last_line(self):
        raw = b'noise\n[{"kind": "none"}, {"kind": "signal", "value": "buy"}]\n'
        steps = parse_step_results(raw, 2)
        assert steps == [NoSignal(), SignalStep(Signal.BUY)]

    def test_empty_output(self):
        with pytest.raises(ExecutionFailure, match="no output"):
            parse_step_results(b"", 1)

    def test_not_json(self):
        with pytest.raises(ExecutionFailure, match="parse"):
            parse_step_results(b"hello", 1)

    def test_wrong_length(self):
        with pytest.raises(ExecutionFailure, match="expected 3"):
            parse_step_results(b'[{"kind": "none"}]', 3)

    def test_malformed_step(self):
        with pytest.raises(ExecutionFailure, match="Malformed"):
            parse_step_results(b'[{"kind": "signal", "value": 1}]', 1)

    def test_signal_before_warmup_rejected(self):
        raw = b'[{"kind": "none"}, {"kind": "signal", "value": "buy"}, {"kind": "none"}]'
        with pytest.raises(ExecutionFailure, match="before warm-up"):
            parse_step_results(raw, 3, warmup=2)

    def test_error_before_warmup_rejected(self):
        raw = b'[{"kind": "error", "detail": "x"}, {"kind": "none"}]'
        with pytest.raises(ExecutionFailure, match="index 0"):
            parse_step_results(raw, 2, warmup=1)

    def test_signal_at_warmup_accepted(self):
        raw = b'[{"kind": "none"}, {"kind": "signal", "value": "sell"}]'
        steps = parse_step_results(raw, 2, warmup=1)
        assert steps[1] == SignalStep(Signal.SELL)


# ── Subprocess executor ──────────────────────────────────────────────────


class TestSubprocessExecutor:

    def test_satisfies_protocol(self):
        assert isinstance(_executor(), StrategyExecutor)

    @pytest.mark.asyncio
    async def test_warmup_then_signals(self):
        steps = await _executor().execute(BUY_ALWAYS, _series(60))
        assert len(steps) == 60
        assert all(s == NoSignal() for s in steps[:50])
        assert all(s == SignalStep(Signal.BUY) for s in steps[50:])

    @pytest.mark.asyncio
    async def test_receives_inclusive_prefix(self):
        source = """
def strategy(prices, timestamps):
    assert len(prices) == len(timestamps)
    return "sell" if len(prices) == 56 else None
"""
        steps = await _executor().execute(source, _series(60))
        assert steps[55] == SignalStep(Signal.SELL)
        assert sum(isinstance(s, SignalStep) for s in steps) == 1

    @pytest.mark.asyncio
    async def test_timestamps_are_iso_dates(self):
        source = """
def strategy(prices, timestamps):
    return "buy" if timestamps[0] == "2023-01-01" else None
"""
        steps = await _executor().execute(source, _series(55))
        assert steps[50] == SignalStep(Signal.BUY)

    @pytest.mark.asyncio
    async def test_numpy_preloaded(self):
        source = """
def strategy(prices, timestamps):
    return "buy" if np.mean(prices) > 0 else "sell"
"""
        steps = await _executor().execute(source, _series(55))
        assert steps[-1] == SignalStep(Signal.BUY)

    @pytest.mark.asyncio
    async def test_exception_becomes_step_error(self):
        source = """
def strategy(prices, timestamps):
    if len(prices) % 2 == 0:
        raise ZeroDivisionError("even")
    return "sell"
"""
        steps = await _executor().execute(source, _series(56))
        errors = [i for i, s in enumerate(steps) if isinstance(s, StepError)]
        assert errors == [51, 53, 55]
        assert "ZeroDivisionError" in steps[51].detail
        assert steps[50] == SignalStep(Signal.SELL)

    @pytest.mark.asyncio
    async def test_unknown_token_is_step_error(self):
        source = """
def strategy(prices, timestamps):
    return "hold"
"""
        steps = await _executor().execute(source, _series(52))
        assert isinstance(steps[50], StepError)
        assert "hold" in steps[50].detail
        assert to_signal(steps[50]) is None

    @pytest.mark.asyncio
    async def test_strategy_prints_do_not_corrupt_output(self):
        source = """
print("loading")
def strategy(prices, timestamps):
    print("step", len(prices))
    return "buy"
"""
        steps = await _executor().execute(source, _series(53))
        assert steps[52] == SignalStep(Signal.BUY)

    @pytest.mark.asyncio
    async def test_no_state_leaks_between_runs(self):
        source = """
calls = []
def strategy(prices, timestamps):
    calls.append(1)
    return "buy" if len(calls) == 1 else None
"""
        executor = _executor()
        first = await executor.execute(source, _series(55))
        second = await executor.execute(source, _series(55))
        assert first == second
        assert first[50] == SignalStep(Signal.BUY)
        assert first[51] == NoSignal()

    @pytest.mark.asyncio
    @pytest.mark.skipif(not hasattr(signal, "setitimer"), reason="needs SIGALRM timers")
    async def test_slow_step_times_out(self):
        source = """
import time
def strategy(prices, timestamps):
    if len(prices) == 52:
        time.sleep(5)
    return "buy"
"""
        steps = await _executor(step_timeout_seconds=0.2).execute(source, _series(54))
        assert isinstance(steps[51], StepError)
        assert "exceeded" in steps[51].detail
        assert steps[52] == SignalStep(Signal.BUY)

    @pytest.mark.asyncio
    async def test_syntax_error_fails_run(self):
        with pytest.raises(ExecutionFailure, match="exited with code") as exc_info:
            await _executor().execute("def strategy(:\n", _series(55))
        assert "SyntaxError" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_missing_entrypoint_fails_run(self):
        with pytest.raises(ExecutionFailure) as exc_info:
            await _executor().execute("def other(p, t):\n    return 'buy'\n", _series(55))
        assert "strategy()" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_hang_is_killed(self):
        source = """
while True:
    pass
"""
        with pytest.raises(ExecutionFailure, match="exceeded"):
            await _executor(timeout_seconds=1.0).execute(source, _series(55))

    @pytest.mark.asyncio
    async def test_missing_interpreter(self, tmp_path):
        executor = SubprocessExecutor(python=str(tmp_path / "no-python"))
        with pytest.raises(ExecutionFailure, match="start"):
            await executor.execute(BUY_ALWAYS, _series(55))

    @pytest.mark.asyncio
    async def test_empty_series(self):
        series = MarketSeries(prices=(), timestamps=(), seed=0)
        assert await _executor().execute(BUY_ALWAYS, series) == []

    @pytest.mark.asyncio
    async def test_custom_warmup(self):
        series = MarketSeries(
            prices=(1.0, 2.0, 3.0),
            timestamps=tuple(EPOCH + timedelta(days=i) for i in range(3)),
            seed=0,
        )
        steps = await _executor(warmup=1).execute(BUY_ALWAYS, series)
        assert steps == [NoSignal(), SignalStep(Signal.BUY), SignalStep(Signal.BUY)]

    @pytest.mark.asyncio
    @pytest.mark.skipif(os.name != "posix", reason="POSIX process probing")
    async def test_cancelled_run_reaps_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"
        source = f"""
import os
def strategy(prices, timestamps):
    with open({str(pid_file)!r}, "w") as fh:
        fh.write(str(os.getpid()))
    while True:
        pass
"""
        executor = _executor(timeout_seconds=60.0, step_timeout_seconds=1000.0)
        task = asyncio.create_task(executor.execute(source, _series(55)))
        for _ in range(200):
            if pid_file.exists() and pid_file.read_text():
                break
            await asyncio.sleep(0.05)
        pid = int(pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)
