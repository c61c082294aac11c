from __future__ import annotations

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Dict

from .errors import ConfigurationError


ROOT = Path(__file__).resolve().parents[2]


def _load_env_file(env_path: Path) -> Dict[str, str]:
    data: Dict[str, str] = {}
    if not env_path.exists():
        return data
    for line in env_path.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        k, v = s.split("=", 1)
        k = k.strip()
        v = v.strip().strip('"').strip("'")
        # simple ${PROJECT_ROOT} expansion
        if "${PROJECT_ROOT}" in v:
            v = v.replace("${PROJECT_ROOT}", os.environ.get("PROJECT_ROOT", "project"))
        data[k] = v
    return data


def _ensure_env_loaded() -> None:
    # one-time soft load
    env_path = ROOT / ".env"
    loaded = _load_env_file(env_path)
    for k, v in loaded.items():
        os.environ.setdefault(k, v)


def _abs(path: str | Path) -> Path:
    p = Path(path)
    if p.is_absolute():
        return p
    return (ROOT / p).resolve()


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name}={raw!r} is not a number") from None


def _env_int(name: str, default: str | None) -> int | None:
    raw = os.environ.get(name, default)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name}={raw!r} is not an integer") from None


@dataclass
class Settings:
    project_root: Path
    log_dir: Path
    artifact_dir: Path
    eps: float = 0.1
    delta: float = 0.05
    stream_length: int = 1_000_000
    capacity: int | None = None
    seed: int | None = None
    log_level: str = "INFO"


def load_settings() -> Settings:
    _ensure_env_loaded()
    project_root = _abs(os.environ.get("PROJECT_ROOT", "project"))
    logs = _abs(os.environ.get("LOG_DIR", f"{project_root}/logs"))
    arts = _abs(os.environ.get("ARTIFACT_DIR", f"{project_root}/artifacts"))
    eps = _env_float("DISTINCT_EPS", "0.1")
    delta = _env_float("DISTINCT_DELTA", "0.05")
    stream_length = _env_int("DISTINCT_STREAM_LENGTH", "1000000")
    capacity = _env_int("DISTINCT_CAPACITY", None)
    seed = _env_int("DISTINCT_SEED", None)
    level = os.environ.get("DISTINCT_LOG_LEVEL", "INFO").upper()
    return Settings(
        project_root=project_root,
        log_dir=logs,
        artifact_dir=arts,
        eps=eps,
        delta=delta,
        stream_length=stream_length if stream_length is not None else 1_000_000,
        capacity=capacity,
        seed=seed,
        log_level=level,
    )


def ensure_dirs(s: Settings) -> None:
    for p in [
        s.project_root,
        s.log_dir,
        s.artifact_dir,
    ]:
        p.mkdir(parents=True, exist_ok=True)
