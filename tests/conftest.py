from __future__ import annotations

import logging
from typing import Iterable, List, Union

import pytest


Outcome = Union[bool, Iterable[bool]]


class StubSource:
    """Coin source with fixed or scripted outcomes.

    ``insert`` answers ``bernoulli`` and ``keep`` answers ``coin``; each is either a
    constant or an iterable consumed one outcome per call.
    """

    def __init__(self, insert: Outcome = True, keep: Outcome = True) -> None:
        self._insert = insert if isinstance(insert, bool) else iter(insert)
        self._keep = keep if isinstance(keep, bool) else iter(keep)
        self.probabilities: List[float] = []
        self.coin_flips = 0

    @staticmethod
    def _draw(outcome) -> bool:
        return outcome if isinstance(outcome, bool) else next(outcome)

    def bernoulli(self, p: float) -> bool:
        self.probabilities.append(p)
        return self._draw(self._insert)

    def coin(self) -> bool:
        self.coin_flips += 1
        return self._draw(self._keep)


@pytest.fixture
def stub():
    return StubSource


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path / "project"))
    for name in (
        "LOG_DIR",
        "ARTIFACT_DIR",
        "DISTINCT_EPS",
        "DISTINCT_DELTA",
        "DISTINCT_STREAM_LENGTH",
        "DISTINCT_CAPACITY",
        "DISTINCT_SEED",
        "DISTINCT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield tmp_path
    # CLI runs attach handlers bound to CliRunner streams
    logger = logging.getLogger("distinct_stream")
    for h in logger.handlers[:]:
        h.close()
    logger.handlers[:] = []
    logger.propagate = True
