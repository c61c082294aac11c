from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from ..core.estimator import DistinctEstimator
from ..core.params import capacity_for, validate_capacity
from ..core.randomness import RandomSource
from .streams import synthetic_stream

log = logging.getLogger("distinct_stream.accuracy")


@dataclass
class TrialParams:
    eps: float = 0.1
    delta: float = 0.05
    n: int = 10_000
    distinct: int = 3_000
    trials: int = 100
    seed: Optional[int] = None
    capacity: Optional[int] = None  # overrides the derived capacity


def _capacity(params: TrialParams) -> int:
    if params.capacity is not None:
        return validate_capacity(params.capacity)
    return capacity_for(params.eps, params.delta, params.n)


def run_trials(params: TrialParams) -> pd.DataFrame:
    """Run independent estimators over one stream of length ``n``.

    The stream is fixed; every trial gets its own generator spawned from the
    master seed, so the spread of the estimates reflects only the estimator's
    randomness.
    """
    capacity = _capacity(params)
    master = RandomSource(params.seed)
    stream = synthetic_stream(params.distinct, params.n, seed=master.spawn().seed)
    rows = []
    for t in range(params.trials):
        est = DistinctEstimator(capacity, source=master.spawn())
        est.ingest_all(stream)
        value = est.estimate()
        rel_error = abs(value - params.distinct) / params.distinct
        rows.append({
            "trial": t,
            "estimate": value,
            "true_distinct": params.distinct,
            "rel_error": rel_error,
            "within_eps": rel_error <= params.eps,
            "rounds": est.rounds,
            "buffer_size": est.buffer_size,
        })
    log.info(f"trials_done={params.trials} capacity={capacity} distinct={params.distinct} n={params.n}")
    return pd.DataFrame(rows, columns=[
        "trial",
        "estimate",
        "true_distinct",
        "rel_error",
        "within_eps",
        "rounds",
        "buffer_size",
    ])


def summarize(df: pd.DataFrame, eps: float, delta: float) -> Dict[str, object]:
    if df.empty:
        return {"trials": 0, "mean_estimate": 0.0, "failure_rate": 0.0, "eps": eps, "delta": delta, "passed": True}
    failure_rate = float((~df["within_eps"].astype(bool)).mean())
    return {
        "trials": int(len(df)),
        "mean_estimate": float(df["estimate"].mean()),
        "mean_rel_error": float(df["rel_error"].mean()),
        "max_rel_error": float(df["rel_error"].max()),
        "failure_rate": failure_rate,
        "eps": eps,
        "delta": delta,
        "passed": failure_rate <= delta,
    }


def write_report(df: pd.DataFrame, summary: Dict[str, object], out_dir: Path, params: Optional[TrialParams] = None) -> Dict[str, str]:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    csv_path = out_dir / "accuracy_trials.csv"
    df.to_csv(csv_path, index=False)
    payload = dict(summary)
    if params is not None:
        payload["params"] = asdict(params)
    payload["generated_at"] = int(time.time())
    json_path = out_dir / "accuracy_summary.json"
    json_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    log.info(f"accuracy_report_written={csv_path}")
    return {"csv": str(csv_path), "summary": str(json_path)}


__all__ = ["TrialParams", "run_trials", "summarize", "write_report"]
