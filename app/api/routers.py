"""Internal API routers — /submit-strategy, /master-model, /ledger-metadata endpoints.

No business logic, no file access.  Delegates to the submission pipeline
and the master model service injected at startup.
"""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.errors import ExecutionFailure, InsufficientTrades, PersistenceError
from app.ledger.metadata import build_ledger_record
from app.master.model import RISK_TIERS
from app.master.service import MasterModelService
from app.strategy.example import EXAMPLE_STRATEGY
from app.submission import SubmissionService

logger = logging.getLogger("strategyforge")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_master: Optional[MasterModelService] = None  # Set via configure_routers()
_submission: Optional[SubmissionService] = None  # Set via configure_routers()


def configure_routers(
    master: Optional[MasterModelService] = None,
    submission: Optional[SubmissionService] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        master: The process's ``MasterModelService``.
        submission: A ``SubmissionService`` sharing the same master service.
    """
    global _master, _submission  # noqa: PLW0603
    _master = master
    _submission = submission


class SubmitRequest(BaseModel):
    code: str = Field(min_length=1)


class LedgerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(min_length=1)
    derived_id: str = Field(alias="derivedId", min_length=1)


def _not_configured() -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "service not configured"})


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/submit-strategy")
async def submit_strategy(body: SubmitRequest):
    """Evaluate a strategy and add it to the master model if it passes."""
    if _submission is None:
        return _not_configured()
    try:
        outcome = await _submission.submit(body.code)
    except InsufficientTrades as exc:
        return JSONResponse(
            status_code=422,
            content={
                "error": "insufficient_trades",
                "detail": str(exc),
                "numberOfTrades": exc.number_of_trades,
            },
        )
    except ExecutionFailure as exc:
        return JSONResponse(
            status_code=400,
            content={"error": "execution_failure", "detail": str(exc)},
        )
    except PersistenceError as exc:
        logger.error("Strategy accepted but not persisted: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "persistence_failure", "detail": str(exc)},
        )
    return outcome.to_dict()


@router.get("/master-model")
async def get_master_model():
    """Return the master model in its persisted layout."""
    if _master is None:
        return _not_configured()
    return _master.snapshot()


@router.get("/master-model/portfolio/{tier}")
async def get_portfolio(tier: str):
    """Return every strategy with its weight in one risk tier."""
    if _master is None:
        return _not_configured()
    if tier not in RISK_TIERS:
        return JSONResponse(
            status_code=404,
            content={"error": f"Unknown tier: {tier}", "tiers": list(RISK_TIERS)},
        )
    rows = _master.portfolio(tier)
    return {
        "tier": tier,
        "strategies": [
            {"code": r.code, "weight": r.weight, "metrics": r.metrics.to_dict()}
            for r in rows
        ],
    }


@router.delete("/master-model")
async def clear_master_model():
    """Remove every strategy from the master model."""
    if _master is None:
        return _not_configured()
    try:
        snapshot = _master.clear_strategies()
    except PersistenceError as exc:
        return JSONResponse(
            status_code=500,
            content={"error": "persistence_failure", "detail": str(exc)},
        )
    logger.warning("Master model cleared via API.")
    return snapshot


@router.post("/ledger-metadata")
async def ledger_metadata(body: LedgerRequest):
    """Build the ledger record for a strategy already in the master model.

    The record carries the medium-tier weight.
    """
    if _master is None:
        return _not_configured()
    entry = _master.find(body.code)
    if entry is None:
        return JSONResponse(
            status_code=404, content={"error": "strategy not in master model"},
        )
    record = build_ledger_record(
        entry.code, body.derived_id, entry.metrics, entry.weights["medium"],
    )
    return record.to_dict()


@router.get("/example-strategy")
async def example_strategy():
    return {"code": EXAMPLE_STRATEGY}
