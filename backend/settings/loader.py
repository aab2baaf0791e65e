from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml

from features.loaders import BUNDLED_FEATURES_PATH
from settings.types import ServiceConfig


def _repo_root() -> Path:
    # .../backend/settings/loader.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def config_path() -> Path:
    return Path(os.getenv("ROUTEGUIDE_CONFIG") or (_repo_root() / "routeguide.yaml"))


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config yaml root: {path}")
    return data


def _apply_env_overrides(data: dict) -> dict:
    out = dict(data)
    features_path = os.getenv("ROUTEGUIDE_FEATURES_PATH")
    if features_path:
        out["featuresPath"] = features_path
    port = os.getenv("ROUTEGUIDE_PORT")
    if port:
        out["server"] = {**(out.get("server") or {}), "port": int(port)}
    level = os.getenv("ROUTEGUIDE_LOG_LEVEL")
    if level:
        out["logging"] = {**(out.get("logging") or {}), "level": level}
    return out


@lru_cache(maxsize=1)
def get_config() -> ServiceConfig:
    return ServiceConfig.model_validate(_apply_env_overrides(_load_yaml(config_path())))


def resolve_repo_path(path: str) -> Path:
    p = Path(path)
    if p.is_absolute():
        return p
    return _repo_root() / p


def features_path() -> Path:
    configured = get_config().featuresPath
    if not configured:
        return BUNDLED_FEATURES_PATH
    return resolve_repo_path(configured)


def clear_config_cache() -> None:
    """
    Drop the cached config so the next `get_config()` re-reads YAML and env.
    """
    get_config.cache_clear()
