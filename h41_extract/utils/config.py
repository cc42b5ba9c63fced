from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_USER_AGENT = "h41-extract research client (contact: data-team@example.org)"
DEFAULT_CALENDAR_URL = "https://www.federalreserve.gov/releases/h41/"
DEFAULT_RELEASE_URL_TEMPLATE = "https://www.federalreserve.gov/releases/h41/{yyyymmdd}/default.htm"


def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping/dict: {p}")
    return data


def get_pipeline_paths(pipeline_cfg: Dict[str, Any]) -> Dict[str, str]:
    storage = pipeline_cfg.get("storage", {}) or {}
    raw_dir = storage.get("raw_dir")
    processed_dir = storage.get("processed_dir")
    if not raw_dir or not processed_dir:
        raise ValueError("pipeline.yaml missing storage.raw_dir/processed_dir")
    return {
        "raw_dir": str(raw_dir),
        "processed_dir": str(processed_dir),
    }


def get_http_settings(pipeline_cfg: Dict[str, Any]) -> Dict[str, Any]:
    http_cfg = pipeline_cfg.get("http", {}) or {}
    return {
        "headers": {"User-Agent": str(http_cfg.get("user_agent", DEFAULT_USER_AGENT))},
        "timeout_seconds": int(http_cfg.get("timeout_seconds", 25)),
        "rate_limit_seconds": float(http_cfg.get("rate_limit_seconds", 1)),
        "max_retries": int(http_cfg.get("max_retries", 3)),
    }


def get_cache_settings(pipeline_cfg: Dict[str, Any]) -> Dict[str, Any]:
    cache_cfg = pipeline_cfg.get("cache", {}) or {}
    ttl = int(cache_cfg.get("ttl_seconds", 3600))
    if ttl <= 0:
        raise ValueError("pipeline.yaml cache.ttl_seconds must be positive")
    return {"ttl_seconds": ttl}


def get_release_settings(pipeline_cfg: Dict[str, Any]) -> Dict[str, str]:
    release_cfg = pipeline_cfg.get("release", {}) or {}
    template = str(release_cfg.get("release_url_template", DEFAULT_RELEASE_URL_TEMPLATE))
    if "{yyyymmdd}" not in template:
        raise ValueError("pipeline.yaml release.release_url_template must contain {yyyymmdd}")
    return {
        "calendar_url": str(release_cfg.get("calendar_url", DEFAULT_CALENDAR_URL)),
        "release_url_template": template,
    }
