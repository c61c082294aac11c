from __future__ import annotations

import json
from pathlib import Path

import click

from .core.config import load_settings, ensure_dirs
from .core.errors import DistinctCountError
from .core.estimator import DistinctEstimator
from .core.logging import setup_logging
from .core.params import capacity_for
from .core.randomness import RandomSource
from .evaluate.accuracy import TrialParams, run_trials, summarize, write_report
from .evaluate.streams import read_elements


@click.group()
def cli() -> None:
    """Approximate distinct-element counting over streams."""


@cli.command()
@click.option("--eps", type=float, default=None, help="Relative error target in (0, 1) [env DISTINCT_EPS]")
@click.option("--delta", type=float, default=None, help="Failure probability in (0, 1) [env DISTINCT_DELTA]")
@click.option("--n", "n", type=int, default=None, help="Upper bound on stream length [env DISTINCT_STREAM_LENGTH]")
def capacity(eps: float | None, delta: float | None, n: int | None) -> None:
    """Print the buffer capacity for the given accuracy targets."""
    s = load_settings()
    eps = s.eps if eps is None else eps
    delta = s.delta if delta is None else delta
    n = s.stream_length if n is None else n
    try:
        cap = capacity_for(eps, delta, n)
    except DistinctCountError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps({"capacity": cap, "eps": eps, "delta": delta, "n": n}, ensure_ascii=False))


@cli.command()
@click.argument("path", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--eps", type=float, default=None)
@click.option("--delta", type=float, default=None)
@click.option("--n", "n", type=int, default=None, help="Upper bound on stream length")
@click.option("--capacity", "explicit_capacity", type=int, default=None, help="Explicit buffer capacity (skips eps/delta/n)")
@click.option("--seed", type=int, default=None, help="Seed for reproducible runs")
def count(path, eps: float | None, delta: float | None, n: int | None, explicit_capacity: int | None, seed: int | None) -> None:
    """Estimate distinct lines read from PATH (stdin by default).

    --capacity and --eps/--delta/--n are exclusive. Accuracy flags on the command
    line take precedence over DISTINCT_CAPACITY from the environment.
    """
    accuracy_flags = any(v is not None for v in (eps, delta, n))
    if explicit_capacity is not None and accuracy_flags:
        raise click.UsageError("--capacity cannot be combined with --eps/--delta/--n")
    s = load_settings()
    log = setup_logging("distinct_stream", settings=s)
    seed = s.seed if seed is None else seed
    source = RandomSource(seed)
    cap = explicit_capacity
    if cap is None and not accuracy_flags:
        cap = s.capacity
    try:
        if cap is not None:
            est = DistinctEstimator(cap, source=source)
        else:
            est = DistinctEstimator.from_accuracy(
                s.eps if eps is None else eps,
                s.delta if delta is None else delta,
                s.stream_length if n is None else n,
                source=source,
            )
        log.info("count_start", extra={"ctx": {"capacity": est.capacity, "seed": seed}})
        est.ingest_all(read_elements(path))
        snap = est.snapshot()
    except DistinctCountError as e:
        log.info(f"count_failed={e}")
        raise click.ClickException(str(e))
    log.info("count_done", extra={"ctx": {"processed": snap.elements_processed, "estimate": snap.estimate}})
    click.echo(json.dumps(snap.as_dict(), ensure_ascii=False))


@cli.command()
@click.option("--eps", type=float, default=0.1, show_default=True)
@click.option("--delta", type=float, default=0.05, show_default=True)
@click.option("--n", "n", type=int, default=10_000, show_default=True, help="Stream length")
@click.option("--distinct", type=int, default=3_000, show_default=True, help="True distinct count of the synthetic stream")
@click.option("--trials", type=int, default=100, show_default=True)
@click.option("--seed", type=int, default=None)
@click.option("--capacity", "explicit_capacity", type=int, default=None, help="Override the derived capacity")
@click.option("--out", "out_dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Report directory (default: ARTIFACT_DIR)")
def trial(eps: float, delta: float, n: int, distinct: int, trials: int, seed: int | None, explicit_capacity: int | None, out_dir: Path | None) -> None:
    """Measure empirical accuracy over repeated independent runs."""
    s = load_settings()
    ensure_dirs(s)
    setup_logging("distinct_stream", settings=s)
    params = TrialParams(eps=eps, delta=delta, n=n, distinct=distinct, trials=trials, seed=seed, capacity=explicit_capacity)
    try:
        df = run_trials(params)
    except DistinctCountError as e:
        raise click.ClickException(str(e))
    summary = summarize(df, eps, delta)
    paths = write_report(df, summary, out_dir or Path(s.artifact_dir), params)
    click.echo(json.dumps({**summary, **paths}, ensure_ascii=False))


if __name__ == "__main__":
    cli()
