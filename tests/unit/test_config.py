"""Unit tests for fetch settings, tier files and structured logging."""

from __future__ import annotations

import json

import pytest

from core.config import CanonConfig, TIERS_SCHEMA, load_tiers, parse_tiers
from core.errors import ConfigurationError, FatalFetchError
from core.structured_logging import default_event_logger, emit_json_event


@pytest.mark.unit

def test_default_config_is_valid():
    CanonConfig.validate()
    assert CanonConfig.ALLOWED_PROTOCOLS == {"http", "https"}
    assert CanonConfig.MAX_REDIRECTS >= 0


@pytest.mark.unit

def test_config_validation_rejects_bad_values(monkeypatch):
    monkeypatch.setattr(CanonConfig, "FETCH_TIMEOUT_SECONDS", 0)
    with pytest.raises(ConfigurationError, match="FETCH_TIMEOUT_SECONDS"):
        CanonConfig.validate()


@pytest.mark.unit

def test_config_validation_rejects_extra_protocols(monkeypatch):
    monkeypatch.setattr(CanonConfig, "ALLOWED_PROTOCOLS", {"http", "https", "file"})
    with pytest.raises(ConfigurationError, match="ALLOWED_PROTOCOLS"):
        CanonConfig.validate()


@pytest.mark.unit

def test_schema_lists_every_boolean_toggle():
    properties = TIERS_SCHEMA["properties"]["tiers"]["items"]["properties"]
    assert properties["strip_www"] == {"type": "boolean"}
    assert properties["convert_to_punycode"] == {"type": "boolean"}
    assert "name" in properties
    assert "strip_query_params" in properties


@pytest.mark.unit

def test_parse_tiers_builds_ordered_tiers():
    tiers = parse_tiers(
        {
            "tiers": [
                {"name": "strict", "strip_www": True, "strip_query": True},
                {"strip_query_params": ["ref"], "strip_hash": True},
            ]
        }
    )

    assert [tier.name for tier in tiers] == ["strict", "tier-2"]
    assert tiers[0].strip_www is True
    assert tiers[1].strip_query_params == ("ref",)
    assert tiers[1].strip_www is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "document",
    [
        {},
        {"tiers": []},
        {"tiers": [{"strip_www": "yes"}]},
        {"tiers": [{"unknown_flag": True}]},
        {"tiers": [{"strip_query_params": "ref"}]},
        {"tiers": [{}], "extra": 1},
    ],
)
def test_parse_tiers_rejects_invalid_documents(document):
    with pytest.raises(ConfigurationError, match="invalid tier definition"):
        parse_tiers(document)


@pytest.mark.unit

def test_parse_tiers_rejects_duplicate_names():
    with pytest.raises(ConfigurationError, match="duplicate tier names: a"):
        parse_tiers({"tiers": [{"name": "a"}, {"name": "a"}]})


@pytest.mark.unit

def test_load_tiers_from_file(tmp_path):
    path = tmp_path / "tiers.json"
    path.write_text(json.dumps({"tiers": [{"name": "only", "strip_www": True}]}), encoding="utf-8")

    tiers = load_tiers(path)

    assert len(tiers) == 1
    assert tiers[0].name == "only"


@pytest.mark.unit

def test_load_tiers_missing_file_and_bad_json(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_tiers(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_tiers(broken)


@pytest.mark.unit

def test_emit_json_event_prints_and_returns_line(capsys):
    line = emit_json_event("canonicalize_started", run_id="run-1", url="https://example.com/feed")

    printed = capsys.readouterr().out.strip()
    event = json.loads(printed)
    assert printed == line
    assert event["event_type"] == "canonicalize_started"
    assert event["run_id"] == "run-1"
    assert event["level"] == "info"
    assert event["url"] == "https://example.com/feed"
    assert "timestamp" in event


@pytest.mark.unit

def test_default_event_logger_lifts_run_id_and_level(capsys):
    default_event_logger("canonicalize_failed", {"run_id": "run-2", "level": "error", "reason": "invalid_url"})

    event = json.loads(capsys.readouterr().out.strip())
    assert event["run_id"] == "run-2"
    assert event["level"] == "error"
    assert event["reason"] == "invalid_url"


@pytest.mark.unit

def test_fatal_fetch_error_message():
    error = FatalFetchError("https://example.com/feed", "origin_bad_status", "FETCH_ORIGIN", "HTTP 500")
    assert str(error) == "origin_bad_status for https://example.com/feed during FETCH_ORIGIN: HTTP 500"
    assert error.reason == "origin_bad_status"
    assert error.state == "FETCH_ORIGIN"
