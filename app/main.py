"""StrategyForge — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serving the API and for evaluating, submitting, and managing strategies
from the shell.
"""

import json
import logging
import pathlib
import sys

from fastapi import FastAPI

from app.api.routers import router
from app.config import Config

app = FastAPI(title="StrategyForge Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("strategyforge")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


def build_services(config: Config):
    """Wire executor → evaluator → master service → submission pipeline.

    Returns:
        ``(evaluator, master_service, submission_service)``.
    """
    from app.evaluation.evaluator import StrategyEvaluator
    from app.master.service import MasterModelService
    from app.repos.master_repo import MasterModelRepo
    from app.sandbox.runner import SubprocessExecutor
    from app.submission import SubmissionService

    executor = SubprocessExecutor(
        python=config.sandbox_python,
        timeout_seconds=config.sandbox_timeout_seconds,
        step_timeout_seconds=config.step_timeout_seconds,
    )
    evaluator = StrategyEvaluator(
        executor,
        num_datasets=config.num_datasets,
        dataset_length=config.dataset_length,
        base_seed=config.base_seed,
        distinct_seeds=config.distinct_seeds,
    )
    master = MasterModelService(MasterModelRepo(config.master_model_path))
    submission = SubmissionService(
        evaluator, master, reject_duplicates=config.reject_duplicates,
    )
    return evaluator, master, submission


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv=None) -> int:
    """Parse CLI arguments and dispatch to the requested command."""
    import argparse
    import asyncio

    from app.config import load_config
    from app.errors import EvaluationError, PersistenceError
    from app.evaluation.acceptance import AcceptanceThresholds

    parser = argparse.ArgumentParser(description="StrategyForge strategy evaluator")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("serve", help="Run the HTTP API")
    p_eval = sub.add_parser("evaluate", help="Evaluate a strategy file (no master model changes)")
    p_eval.add_argument("file", type=pathlib.Path)
    p_submit = sub.add_parser("submit", help="Evaluate a strategy file and add it if it passes")
    p_submit.add_argument("file", type=pathlib.Path)
    sub.add_parser("clear", help="Remove every strategy from the master model")
    sub.add_parser("show", help="Print the master model document")
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    evaluator, master, submission = build_services(config)

    if args.command == "serve":
        import uvicorn
        from app.api.routers import configure_routers

        configure_routers(master=master, submission=submission)
        logger.info("API available at http://localhost:%d", config.api_port)
        uvicorn.run(app, host="0.0.0.0", port=config.api_port, log_level="info")
        return 0

    if args.command == "show":
        print(json.dumps(master.snapshot(), indent=2))
        return 0

    if args.command == "clear":
        try:
            master.clear_strategies()
        except PersistenceError as exc:
            logger.error("%s", exc)
            return 2
        return 0

    code = args.file.read_text(encoding="utf-8")
    try:
        if args.command == "evaluate":
            metrics = asyncio.run(evaluator.evaluate(code))
            failures = AcceptanceThresholds().failures(metrics)
            print(json.dumps(
                {"metrics": metrics.to_dict(), "passed": not failures, "failures": failures},
                indent=2,
            ))
            return 0 if not failures else 1

        outcome = asyncio.run(submission.submit(code))
    except (EvaluationError, PersistenceError) as exc:
        logger.error("Evaluation failed: %s", exc)
        return 2

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.passed and not outcome.duplicate else 1


def main() -> None:
    sys.exit(_run_cli())


if __name__ == "__main__":
    main()
