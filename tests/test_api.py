"""Tests for the HTTP API endpoints."""

from fastapi.testclient import TestClient

from app.api.routers import configure_routers
from app.backtest.models import EvaluationResult
from app.errors import ExecutionFailure, InsufficientTrades, PersistenceError
from app.main import app
from app.master.service import MasterModelService
from app.repos.master_repo import MasterModelRepo
from app.strategy.example import EXAMPLE_STRATEGY
from app.submission import SubmissionService

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


class StubEvaluator:
    def __init__(self, result=None, error=None):
        self.result = result or EvaluationResult(1.0, 5.0, 10.0, 2.0, 40)
        self.error = error

    async def evaluate(self, source):
        if self.error is not None:
            raise self.error
        return self.result


def _configure(tmp_path, evaluator=None):
    master = MasterModelService(MasterModelRepo(tmp_path / "m.json"))
    submission = SubmissionService(evaluator or StubEvaluator(), master)
    configure_routers(master=master, submission=submission)
    return master


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestSubmitEndpoint:

    def test_passing_submission(self, tmp_path):
        _configure(tmp_path)
        resp = client.post("/submit-strategy", json={"code": "def strategy(p, t): pass"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["passed"] is True
        assert data["duplicate"] is False
        assert data["metrics"]["sharpeRatio"] == 1.0
        assert len(data["masterModel"]["strategies"]) == 1

    def test_duplicate_flagged(self, tmp_path):
        _configure(tmp_path)
        client.post("/submit-strategy", json={"code": "x"})
        data = client.post("/submit-strategy", json={"code": "x"}).json()
        assert data["duplicate"] is True
        assert len(data["masterModel"]["strategies"]) == 1

    def test_insufficient_trades(self, tmp_path):
        _configure(tmp_path, StubEvaluator(error=InsufficientTrades(29, 30)))
        resp = client.post("/submit-strategy", json={"code": "x"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "insufficient_trades"
        assert resp.json()["numberOfTrades"] == 29

    def test_execution_failure(self, tmp_path):
        _configure(tmp_path, StubEvaluator(error=ExecutionFailure("exited with code 1")))
        resp = client.post("/submit-strategy", json={"code": "x"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "execution_failure"

    def test_persistence_failure(self, tmp_path):
        master = _configure(tmp_path)
        master._repo.save = _raise_persistence
        resp = client.post("/submit-strategy", json={"code": "x"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "persistence_failure"

    def test_empty_code_rejected(self, tmp_path):
        _configure(tmp_path)
        resp = client.post("/submit-strategy", json={"code": ""})
        assert resp.status_code == 422

    def test_not_configured(self):
        configure_routers()
        resp = client.post("/submit-strategy", json={"code": "x"})
        assert resp.status_code == 503


class TestMasterModelEndpoints:

    def test_get_empty(self, tmp_path):
        _configure(tmp_path)
        resp = client.get("/master-model")
        assert resp.status_code == 200
        assert resp.json() == {
            "strategies": [],
            "scores": {"low": 0.0, "medium": 0.0, "high": 0.0},
        }

    def test_portfolio(self, tmp_path):
        _configure(tmp_path)
        client.post("/submit-strategy", json={"code": "x"})
        resp = client.get("/master-model/portfolio/low")
        assert resp.status_code == 200
        data = resp.json()
        assert data["tier"] == "low"
        assert data["strategies"][0]["weight"] == 1.0

    def test_portfolio_unknown_tier(self, tmp_path):
        _configure(tmp_path)
        resp = client.get("/master-model/portfolio/extreme")
        assert resp.status_code == 404

    def test_clear(self, tmp_path):
        master = _configure(tmp_path)
        client.post("/submit-strategy", json={"code": "x"})
        resp = client.delete("/master-model")
        assert resp.status_code == 200
        assert resp.json()["strategies"] == []
        assert MasterModelRepo(tmp_path / "m.json").load().strategies == []
        assert not master.contains("x")


class TestLedgerEndpoint:

    def test_record_for_known_strategy(self, tmp_path):
        _configure(tmp_path)
        client.post("/submit-strategy", json={"code": "x"})
        resp = client.post("/ledger-metadata", json={"code": "x", "derivedId": "0xabc"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["derived_id"] == "0xabc"
        assert data["weight"] == 10_000
        assert data["sharpe"] == 10_000

    def test_unknown_strategy(self, tmp_path):
        _configure(tmp_path)
        resp = client.post("/ledger-metadata", json={"code": "nope", "derivedId": "0xabc"})
        assert resp.status_code == 404


class TestExampleStrategy:

    def test_example_is_valid_python(self):
        resp = client.get("/example-strategy")
        assert resp.status_code == 200
        code = resp.json()["code"]
        assert code == EXAMPLE_STRATEGY
        compile(code, "<example>", "exec")
        assert "def strategy(prices, timestamps)" in code


def _raise_persistence(model):
    raise PersistenceError("disk full")
