"""
CONFIG TESTS - Loading and validation of the JSON configuration

Run: pytest tests/test_config.py
"""

import json
import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dirsitemap.config import build_scanner_options, load_config, validate_config
from dirsitemap.generator import DEFAULT_OPTIONS

# =============================================================================
# 1. LOADING
# =============================================================================

def test_example_config_is_valid():
    config = load_config(str(PROJECT_ROOT / "config.example.json"))
    assert config is not None
    assert config["directory"] == "public"


def test_missing_file():
    with tempfile.TemporaryDirectory() as tmp:
        assert load_config(os.path.join(tmp, "config.json")) is None


def test_bad_json():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "config.json")
        Path(path).write_text("{not json", encoding="utf-8")
        assert load_config(path) is None


def test_invalid_config_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "config.json")
        Path(path).write_text(json.dumps({"options": {}}), encoding="utf-8")
        assert load_config(path) is None

# =============================================================================
# 2. VALIDATION
# =============================================================================

def test_minimal_config():
    assert validate_config({"directory": "site"})


def test_directory_required():
    assert not validate_config({})
    assert not validate_config({"directory": "  "})
    assert not validate_config({"directory": 3})
    assert not validate_config(["site"])


def test_option_types():
    base = {"directory": "site"}
    assert validate_config({**base, "options": {"ext": [".html"], "index": ["index.html"]}})
    assert not validate_config({**base, "options": {"ext": ".html"}})
    assert not validate_config({**base, "options": {"index": [1]}})
    assert not validate_config({**base, "options": {"include_sitemap": "yes"}})
    assert not validate_config({**base, "options": []})


def test_last_modified_option():
    base = {"directory": "site"}
    assert validate_config({**base, "options": {"last_modified": True}})
    assert validate_config({**base, "options": {"last_modified": "2020-01-01"}})
    assert not validate_config({**base, "options": {"last_modified": "soon"}})
    assert not validate_config({**base, "options": {"last_modified": 5}})


def test_priority_and_change_frequency_options():
    base = {"directory": "site"}
    assert validate_config({**base, "options": {"priority": 0.8, "change_frequency": "daily"}})
    assert validate_config({**base, "options": {"priority": "0.8"}})
    assert not validate_config({**base, "options": {"priority": "high"}})
    assert not validate_config({**base, "options": {"priority": True}})
    assert not validate_config({**base, "options": {"change_frequency": 7}})


def test_unknown_options_pass():
    assert validate_config({"directory": "site", "options": {"site_name": "example"}})


def test_output_paths_must_be_strings():
    assert not validate_config({"directory": "site", "output": ""})
    assert not validate_config({"directory": "site", "data_directory": 5})

# =============================================================================
# 3. SCANNER OPTIONS
# =============================================================================

def test_build_scanner_options_defaults():
    assert build_scanner_options(None) == DEFAULT_OPTIONS
    assert build_scanner_options({"directory": "site"}) == DEFAULT_OPTIONS


def test_build_scanner_options_overrides():
    options = build_scanner_options({
        "directory": "site",
        "options": {"include_sitemap": False, "priority": 0.7, "site_name": "x"},
    })
    assert options["include_sitemap"] is False
    assert options["priority"] == 0.7
    assert options["site_name"] == "x"
    assert options["ext"] == [".html", ".htm"]
