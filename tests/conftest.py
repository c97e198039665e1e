import json
from pathlib import Path

import pytest

# Raw job records and settings files used by contract tests
FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def load_text(fixtures_dir):
    """
    load_text("jobs_sample.json") -> str
    """
    def _load(name: str) -> str:
        return (fixtures_dir / name).read_text(encoding="utf-8")
    return _load


@pytest.fixture
def load_json(load_text):
    """
    load_json("jobs_sample.json") -> parsed JSON (dict or list)
    """
    def _load(name: str):
        return json.loads(load_text(name))
    return _load
