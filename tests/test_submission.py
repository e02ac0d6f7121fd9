"""Tests for the submission pipeline and ledger metadata."""

import hashlib

import pytest

from app.backtest.models import EvaluationResult
from app.errors import InsufficientTrades
from app.ledger.metadata import SCALE, build_ledger_record, strategy_hash
from app.master.service import MasterModelService
from app.repos.master_repo import MasterModelRepo
from app.submission import SubmissionService


# ── Helpers ──────────────────────────────────────────────────────────────

PASSING = EvaluationResult(1.0, 5.0, 10.0, 2.0, 40)
FAILING = EvaluationResult(0.2, 30.0, 1.0, 1.1, 40)


class StubEvaluator:
    """Returns canned metrics (or raises) without running anything."""

    def __init__(self, result=PASSING, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def evaluate(self, source):
        self.calls.append(source)
        if self.error is not None:
            raise self.error
        return self.result


def _service(tmp_path, evaluator, **kwargs):
    master = MasterModelService(MasterModelRepo(tmp_path / "m.json"))
    return SubmissionService(evaluator, master, **kwargs), master


# ── Submission ───────────────────────────────────────────────────────────


class TestSubmissionService:

    @pytest.mark.asyncio
    async def test_passing_strategy_added(self, tmp_path):
        submission, master = _service(tmp_path, StubEvaluator())
        outcome = await submission.submit("code-a")
        assert outcome.passed is True
        assert outcome.duplicate is False
        assert outcome.failures == []
        assert master.contains("code-a")
        assert outcome.master_model["scores"]["medium"] == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_failing_strategy_not_added(self, tmp_path):
        submission, master = _service(tmp_path, StubEvaluator(FAILING))
        outcome = await submission.submit("code-b")
        assert outcome.passed is False
        assert len(outcome.failures) == 4
        assert not master.contains("code-b")
        assert outcome.master_model["strategies"] == []

    @pytest.mark.asyncio
    async def test_duplicate_rejected_by_default(self, tmp_path):
        submission, master = _service(tmp_path, StubEvaluator())
        await submission.submit("code-a")
        outcome = await submission.submit("code-a")
        assert outcome.passed is True
        assert outcome.duplicate is True
        assert len(master.snapshot()["strategies"]) == 1

    @pytest.mark.asyncio
    async def test_duplicates_allowed_when_configured(self, tmp_path):
        submission, master = _service(tmp_path, StubEvaluator(), reject_duplicates=False)
        await submission.submit("code-a")
        outcome = await submission.submit("code-a")
        assert outcome.duplicate is False
        assert len(master.snapshot()["strategies"]) == 2

    @pytest.mark.asyncio
    async def test_insufficient_trades_propagates(self, tmp_path):
        submission, master = _service(
            tmp_path, StubEvaluator(error=InsufficientTrades(29, 30)),
        )
        with pytest.raises(InsufficientTrades):
            await submission.submit("code-c")
        assert master.snapshot()["strategies"] == []

    @pytest.mark.asyncio
    async def test_outcome_document(self, tmp_path):
        submission, _ = _service(tmp_path, StubEvaluator())
        doc = (await submission.submit("code-a")).to_dict()
        assert set(doc) == {"metrics", "passed", "duplicate", "failures", "masterModel"}
        assert doc["metrics"]["numberOfTrades"] == 40


# ── Ledger metadata ──────────────────────────────────────────────────────


class TestLedgerRecord:

    def test_scaled_fields(self):
        record = build_ledger_record("code", "0xabc", PASSING, 0.25)
        assert record.strategy_hash == hashlib.sha256(b"code").hexdigest()
        assert record.derived_id == "0xabc"
        assert record.sharpe == 1 * SCALE
        assert record.drawdown == 5 * SCALE
        assert record.total_return == 10 * SCALE
        assert record.profit_factor == 2 * SCALE
        assert record.weight == 2500

    def test_negative_values_round(self):
        result = EvaluationResult(-0.123456, 0.0, -3.33333, 0.0, 30)
        record = build_ledger_record("c", "id", result, 1 / 3)
        assert record.sharpe == -1235
        assert record.total_return == -33333
        assert record.weight == 3333

    def test_hash_is_stable(self):
        assert strategy_hash("abc") == strategy_hash("abc")
        assert strategy_hash("abc") != strategy_hash("abd")

    def test_empty_derived_id_rejected(self):
        with pytest.raises(ValueError, match="derived_id"):
            build_ledger_record("c", "", PASSING, 1.0)
