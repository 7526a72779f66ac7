"""Tests for loading the compendium file."""

from __future__ import annotations

import json

import pytest

from curator.exceptions import ServiceUnavailableError
from curator.services.compendium_loader import load_compendium


def test_loads_valid_file(tmp_path, compendium_data):
    path = tmp_path / "resume-data.json"
    path.write_text(json.dumps(compendium_data), encoding="utf-8")
    compendium = load_compendium(path)
    assert [o.id for o in compendium.experience] == ["company-a", "company-b"]


def test_missing_file(tmp_path):
    with pytest.raises(ServiceUnavailableError):
        load_compendium(tmp_path / "missing.json")


def test_malformed_json(tmp_path):
    path = tmp_path / "resume-data.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ServiceUnavailableError):
        load_compendium(path)


def test_schema_violation(tmp_path):
    path = tmp_path / "resume-data.json"
    path.write_text(json.dumps({"experience": [{"id": "no-start-date"}]}), encoding="utf-8")
    with pytest.raises(ServiceUnavailableError) as exc_info:
        load_compendium(path)
    assert exc_info.value.status_code == 503
