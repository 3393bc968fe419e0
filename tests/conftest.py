"""
Pytest configuration and shared fixtures.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict

import pandas as pd
import pytest

from pharmacy_match.data_models import Patient, Pharmacist, Pharmacy
from pharmacy_match.logger import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    """Each test configures logging against its own captured stdout."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def make_patient() -> Callable[..., Patient]:
    """Patient factory: Japanese speaker with no other answers unless overridden."""

    def _make(**fields: Any) -> Patient:
        fields.setdefault("id", "patient-1")
        return Patient(**fields)

    return _make


@pytest.fixture
def make_pharmacist() -> Callable[..., Pharmacist]:
    """Pharmacist factory using attribute (not column) names."""

    def _make(**fields: Any) -> Pharmacist:
        fields.setdefault("id", "pharmacist-1")
        fields.setdefault("languages", ["ja"])
        return Pharmacist(**fields)

    return _make


@pytest.fixture
def shibuya_pharmacy() -> Pharmacy:
    return Pharmacy(id="pharmacy-1", name="Shibuya Pharmacy", area="渋谷区", services=["在宅", "オンライン相談"])


@pytest.fixture
def sample_tables() -> Dict[str, list]:
    """Rows shaped like the store's tables (singular list columns)."""
    return {
        "pharmacies": [
            {"id": "ph-1", "name": "Sakura Pharmacy", "area": "渋谷区", "services": "在宅、オンライン相談",
             "has_multilingual_support": True},
            {"id": "ph-2", "name": "Minato Pharmacy", "area": "港区", "services": None,
             "has_multilingual_support": False},
        ],
        "pharmacists": [
            {"id": "rx-1", "name": "Sato Hanako", "specialty": ["がん", "漢方"], "language": ["ja", "en"],
             "experience_case": ["がん"], "years_of_experience": 12, "consultation_style": "丁寧な説明",
             "personality": "穏やか", "care_role": ["expert"], "belongs_pharmacy_id": "ph-1",
             "visibility": "public", "gender": "女性", "age_category": "40代"},
            {"id": "rx-2", "name": "Tanaka Ken", "specialty": ["メンタル"], "language": ["ja"],
             "experience_case": ["不眠"], "years_of_experience": 3, "consultation_style": "じっくり話を聞く",
             "personality": "やさしい", "care_role": ["empathy"], "belongs_pharmacy_id": "ph-2",
             "visibility": "members", "gender": "男性", "age_category": "30代"},
            {"id": "rx-3", "name": "Ito Sakura", "specialty": ["在宅"], "language": ["ja", "vi"],
             "experience_case": [], "years_of_experience": None, "consultation_style": "",
             "personality": "", "care_role": [], "belongs_pharmacy_id": None,
             "visibility": "public", "gender": None, "age_category": None},
        ],
        "patients": [
            {"id": "pt-1", "language": "en", "area": "渋谷区", "severity": "severe",
             "value_preference": "expertise", "care_style": "expert",
             "symptom_score": {"cancer": 1}, "lifestyle_score": {"support_homecare": 1},
             "type": "A", "main_pharmacist_id": "rx-3"},
            {"id": "pt-2", "language": "ja", "area": None, "severity": "mild",
             "value_preference": "empathy", "care_style": "empathy",
             "symptom_score": {"mental_sleep": 1}, "lifestyle_score": {},
             "type": "C", "main_pharmacist_id": None},
        ],
    }


def _to_csv_frame(rows: list) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    for col in df.columns:
        df[col] = df[col].map(lambda v: json.dumps(v, ensure_ascii=False) if isinstance(v, (list, dict)) else v)
    return df


@pytest.fixture
def csv_data_dir(tmp_path, sample_tables) -> Path:
    """Directory with the sample tables exported as CSV (lists/dicts as JSON text)."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    for table, rows in sample_tables.items():
        _to_csv_frame(rows).to_csv(data_dir / f"{table}.csv", index=False)
    return data_dir


@pytest.fixture
def json_data_dir(tmp_path, sample_tables) -> Path:
    """Directory with the sample tables exported as JSON records."""
    data_dir = tmp_path / "json_data"
    data_dir.mkdir()
    for table, rows in sample_tables.items():
        (data_dir / f"{table}.json").write_text(json.dumps(rows, ensure_ascii=False), encoding="utf-8")
    return data_dir


CONFIG_ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "PHARMACY_MATCH_DATA_DIR",
    "PHARMACY_MATCH_TOP_K",
    "PHARMACY_MATCH_LOG_LEVEL",
    "PHARMACY_MATCH_TIMEOUT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove configuration variables so tests see defaults.

    load_dotenv writes straight into os.environ, so anything a test loads is
    dropped again on teardown.
    """
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield monkeypatch
    for name in CONFIG_ENV_VARS:
        os.environ.pop(name, None)
