"""Sandbox harness — runs inside the isolated strategy process.

Executed as a standalone script (``python -I harness.py``); it must not
import anything from ``app``.  Reads one JSON request from stdin, calls the
submitted entry function once per index on the price/timestamp prefix, and
writes a single JSON list of tagged step results to stdout.

Exit status 2 means the request or the strategy source itself is unusable;
per-index failures are reported as ``{"kind": "error"}`` records instead.
"""

import builtins
import contextlib
import json
import signal
import sys
import traceback

import numpy as np


class _StepTimeout(BaseException):
    """Raised by the alarm handler; not catchable as ``Exception``."""


def _on_alarm(signum, frame):
    raise _StepTimeout()


def _load_entrypoint(source: str, entrypoint: str):
    namespace = {
        "__name__": "__strategy__",
        "__builtins__": builtins,
        "np": np,
    }
    code = compile(source, "<strategy>", "exec")
    with contextlib.redirect_stdout(sys.stderr):
        exec(code, namespace)  # noqa: S102
    func = namespace.get(entrypoint)
    if not callable(func):
        raise LookupError(f"strategy source does not define {entrypoint}()")
    return func


def _classify(value) -> dict:
    if value is None:
        return {"kind": "none"}
    if isinstance(value, str) and value in ("buy", "sell"):
        return {"kind": "signal", "value": str(value)}
    return {"kind": "error", "detail": f"unrecognised signal {value!r}"}


def run_strategy(func, prices, timestamps, warmup, step_timeout):
    use_alarm = step_timeout > 0 and hasattr(signal, "setitimer")
    if use_alarm:
        signal.signal(signal.SIGALRM, _on_alarm)

    results = []
    for i in range(len(prices)):
        if i < warmup:
            results.append({"kind": "none"})
            continue
        try:
            if use_alarm:
                signal.setitimer(signal.ITIMER_REAL, step_timeout)
            try:
                with contextlib.redirect_stdout(sys.stderr):
                    value = func(prices[: i + 1], timestamps[: i + 1])
            finally:
                if use_alarm:
                    signal.setitimer(signal.ITIMER_REAL, 0)
            results.append(_classify(value))
        except _StepTimeout:
            results.append({"kind": "error", "detail": f"step exceeded {step_timeout}s"})
        except Exception as exc:
            results.append({"kind": "error", "detail": f"{type(exc).__name__}: {exc}"})
    return results


def main() -> int:
    try:
        request = json.loads(sys.stdin.read())
        source = request["source"]
        prices = [float(p) for p in request["prices"]]
        timestamps = list(request["timestamps"])
        warmup = int(request.get("warmup", 50))
        step_timeout = float(request.get("step_timeout", 0))
        entrypoint = request.get("entrypoint", "strategy")
    except (ValueError, KeyError, TypeError) as exc:
        print(f"invalid sandbox request: {exc}", file=sys.stderr)
        return 2

    try:
        func = _load_entrypoint(source, entrypoint)
    except Exception:
        traceback.print_exc(file=sys.stderr)
        return 2

    results = run_strategy(func, prices, timestamps, warmup, step_timeout)
    sys.stdout.write(json.dumps(results) + "\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
