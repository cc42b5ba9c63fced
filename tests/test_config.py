import pytest

from conftest import ROOT
from h41_extract.utils.config import (
    get_cache_settings,
    get_http_settings,
    get_pipeline_paths,
    get_release_settings,
    load_yaml,
)


def test_load_yaml_requires_mapping(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")  # YAML list, not dict
    with pytest.raises(ValueError):
        load_yaml(p)


def test_load_yaml_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml(tmp_path / "nope.yaml")


def test_get_pipeline_paths_requires_storage_keys():
    with pytest.raises(ValueError):
        get_pipeline_paths({"storage": {"processed_dir": "x"}})


def test_shipped_pipeline_config():
    cfg = load_yaml(ROOT / "configs" / "pipeline.yaml")
    paths = get_pipeline_paths(cfg)
    assert paths["raw_dir"].endswith("h41")
    http = get_http_settings(cfg)
    assert "User-Agent" in http["headers"]
    assert http["max_retries"] >= 1
    assert get_cache_settings(cfg)["ttl_seconds"] == 3600
    assert "{yyyymmdd}" in get_release_settings(cfg)["release_url_template"]


def test_settings_defaults_and_validation():
    assert get_http_settings({})["timeout_seconds"] == 25
    assert get_cache_settings({})["ttl_seconds"] == 3600
    with pytest.raises(ValueError):
        get_cache_settings({"cache": {"ttl_seconds": 0}})
    with pytest.raises(ValueError):
        get_release_settings({"release": {"release_url_template": "https://x.test/latest.htm"}})
