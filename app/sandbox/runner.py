"""Sandboxed strategy runner — executes submitted code in a child process.

``StrategyExecutor`` is the seam the evaluator depends on; the production
implementation is ``SubprocessExecutor``, which runs ``harness.py`` under a
separate interpreter with a wall-clock budget.  OS-level isolation (network,
filesystem, resource limits) is the host's responsibility.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import pathlib
import sys
import tempfile
import time
from typing import Protocol, runtime_checkable

from app.errors import ExecutionFailure
from app.market.models import MarketSeries
from app.sandbox.models import NoSignal, StepError, StepResult, step_from_dict

logger = logging.getLogger("strategyforge.sandbox")

HARNESS_PATH = pathlib.Path(__file__).resolve().parent / "harness.py"
WARMUP_INDEX = 50
ENTRYPOINT = "strategy"
_STDERR_TAIL = 2000


@runtime_checkable
class StrategyExecutor(Protocol):
    """Runs strategy *source* over *series*, one step result per index."""

    async def execute(self, source: str, series: MarketSeries) -> list[StepResult]:
        ...


class SubprocessExecutor:
    """Executes strategies in a fresh ``python -I`` process per call.

    Args:
        python: Interpreter used for the child process.
        timeout_seconds: Budget for the whole run; exceeding it kills the
            process and fails the trial.
        step_timeout_seconds: Budget for a single index; exceeding it turns
            that index into a ``StepError``.
        warmup: Indices below this are always no-signal.
    """

    def __init__(
        self,
        python: str = sys.executable,
        timeout_seconds: float = 120.0,
        step_timeout_seconds: float = 1.0,
        warmup: int = WARMUP_INDEX,
        entrypoint: str = ENTRYPOINT,
    ) -> None:
        self._python = python
        self._timeout = timeout_seconds
        self._step_timeout = step_timeout_seconds
        self._warmup = warmup
        self._entrypoint = entrypoint

    async def execute(self, source: str, series: MarketSeries) -> list[StepResult]:
        """Run *source* against *series* and return the per-index results.

        Raises:
            ExecutionFailure: The process could not start, exited non-zero,
                timed out, or produced unparseable output.
        """
        payload = json.dumps({
            "source": source,
            "prices": list(series.prices),
            "timestamps": [t.isoformat() for t in series.timestamps],
            "warmup": self._warmup,
            "entrypoint": self._entrypoint,
            "step_timeout": self._step_timeout,
        }).encode("utf-8")

        started = time.monotonic()
        with tempfile.TemporaryDirectory(prefix="strategy_") as workdir:
            try:
                proc = await asyncio.create_subprocess_exec(
                    self._python, "-I", str(HARNESS_PATH),
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                    env=_child_env(),
                )
            except OSError as exc:
                raise ExecutionFailure(f"Could not start sandbox process: {exc}") from exc

            try:
                stdout, stderr = await asyncio.wait_for(
                    proc.communicate(payload), timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Sandbox run (seed=%d) killed after %.1fs timeout",
                    series.seed, self._timeout,
                )
                raise ExecutionFailure(
                    f"Strategy execution exceeded {self._timeout:g}s"
                ) from None
            finally:
                # Timeout or cancellation: reap the child before the workdir is removed.
                if proc.returncode is None:
                    await _kill(proc)

        err_text = stderr.decode("utf-8", errors="replace")[-_STDERR_TAIL:]
        if proc.returncode != 0:
            logger.warning(
                "Sandbox exited with code %s: %s", proc.returncode, err_text.strip(),
            )
            raise ExecutionFailure(
                f"Strategy process exited with code {proc.returncode}",
                stderr=err_text,
            )

        steps = parse_step_results(stdout, len(series), self._warmup)
        errors = [s for s in steps if isinstance(s, StepError)]
        logger.debug(
            "Sandbox run seed=%d finished in %.2fs (%d step errors)",
            series.seed, time.monotonic() - started, len(errors),
        )
        return steps


def parse_step_results(
    raw: bytes, expected_length: int, warmup: int = 0,
) -> list[StepResult]:
    """Decode the harness's final stdout line into step results.

    Raises ``ExecutionFailure`` unless it is a JSON list of exactly
    *expected_length* well-formed records, all of them ``none`` before
    index *warmup*.
    """
    lines = raw.decode("utf-8", errors="replace").strip().splitlines()
    if not lines:
        raise ExecutionFailure("Strategy process produced no output")
    try:
        records = json.loads(lines[-1])
    except json.JSONDecodeError as exc:
        raise ExecutionFailure(f"Failed to parse strategy output: {exc}") from exc
    if not isinstance(records, list):
        raise ExecutionFailure("Strategy output is not a list of steps")
    if len(records) != expected_length:
        raise ExecutionFailure(
            f"Strategy output has {len(records)} steps, expected {expected_length}"
        )
    try:
        steps = [step_from_dict(r) for r in records]
    except ValueError as exc:
        raise ExecutionFailure(f"Malformed step in strategy output: {exc}") from exc
    for index, step in enumerate(steps[:warmup]):
        if not isinstance(step, NoSignal):
            raise ExecutionFailure(
                f"Strategy output has a result at index {index}, before warm-up {warmup}"
            )
    return steps


async def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


def _child_env() -> dict[str, str]:
    env = {"PATH": os.environ.get("PATH", os.defpath), "LANG": "C.UTF-8"}
    # Windows needs SYSTEMROOT to initialise the interpreter at all.
    if "SYSTEMROOT" in os.environ:
        env["SYSTEMROOT"] = os.environ["SYSTEMROOT"]
    return env
