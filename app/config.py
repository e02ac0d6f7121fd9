"""StrategyForge — application configuration.

Loads .env variables into a typed config object.
Every variable is optional; malformed numeric values are rejected on startup.
"""

import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv


_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    master_model_path: str
    num_datasets: int
    dataset_length: int
    base_seed: int
    distinct_seeds: bool  # False replays base_seed for every trial
    sandbox_python: str
    sandbox_timeout_seconds: float
    step_timeout_seconds: float
    reject_duplicates: bool
    log_level: str
    api_port: int


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable when
    a numeric value cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    num_datasets = _int_var("NUM_DATASETS", 5)
    dataset_length = _int_var("DATASET_LENGTH", 1000)
    sandbox_timeout = _float_var("SANDBOX_TIMEOUT_SECONDS", 120.0)
    step_timeout = _float_var("STEP_TIMEOUT_SECONDS", 1.0)

    if num_datasets < 1:
        raise ValueError(f"NUM_DATASETS must be >= 1, got {num_datasets}")
    if dataset_length < 1:
        raise ValueError(f"DATASET_LENGTH must be >= 1, got {dataset_length}")
    if sandbox_timeout <= 0:
        raise ValueError(
            f"SANDBOX_TIMEOUT_SECONDS must be positive, got {sandbox_timeout}"
        )
    if step_timeout <= 0:
        raise ValueError(
            f"STEP_TIMEOUT_SECONDS must be positive, got {step_timeout}"
        )

    return Config(
        master_model_path=os.environ.get("MASTER_MODEL_PATH", "data/masterModel.json"),
        num_datasets=num_datasets,
        dataset_length=dataset_length,
        base_seed=_int_var("BASE_SEED", 12345),
        distinct_seeds=_bool_var("DISTINCT_SEEDS", True),
        sandbox_python=os.environ.get("SANDBOX_PYTHON") or sys.executable,
        sandbox_timeout_seconds=sandbox_timeout,
        step_timeout_seconds=step_timeout,
        reject_duplicates=_bool_var("REJECT_DUPLICATES", True),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_int_var("API_PORT", 8080),
    )


# ── Helpers ──────────────────────────────────────────────────────────────


def _int_var(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_var(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _bool_var(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if not raw:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")
