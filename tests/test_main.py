"""
Tests for the command line interface.
"""

import pandas as pd
import pytest
from typer.testing import CliRunner

from pharmacy_match.main import app


runner = CliRunner()


@pytest.fixture
def invoke(clean_env, csv_data_dir):
    def _invoke(*args):
        return runner.invoke(app, ["--data-dir", str(csv_data_dir), *args])

    return _invoke


class TestScoreCommand:
    def test_prints_score_and_reasons(self, invoke):
        result = invoke("score", "pt-1", "rx-1")

        assert result.exit_code == 0, result.output
        assert "score=100" in result.output
        assert "Can consult in your preferred language." in result.output
        assert "Breakdown" in result.output

    def test_type_override(self, invoke):
        result = invoke("score", "pt-2", "rx-3", "--type", "d")

        assert result.exit_code == 0, result.output
        assert "score=50" in result.output

    def test_invalid_type(self, invoke):
        result = invoke("score", "pt-1", "rx-1", "--type", "Z")

        assert result.exit_code != 0

    def test_unknown_patient(self, invoke):
        result = invoke("score", "pt-404", "rx-1")

        assert result.exit_code == 1
        assert "pt-404" in result.output


class TestMatchCommand:
    def test_top_matches_and_main_pharmacist(self, invoke):
        result = invoke("match", "pt-1")

        assert result.exit_code == 0, result.output
        assert "Type A: expertise-focused" in result.output
        assert "leaves it to the expert" in result.output
        assert "Main pharmacist: Ito Sakura (score=5)" in result.output

    def test_writes_csv(self, invoke, tmp_path):
        out = tmp_path / "out" / "matches.csv"

        result = invoke("match", "pt-2", "--linked", "--out", str(out))

        assert result.exit_code == 0, result.output
        df = pd.read_csv(out)
        assert list(df["pharmacist_id"]) == ["rx-2", "rx-1", "rx-3"]
        assert list(df["match_score"]) == [100, 88, 40]

    def test_top_k_option(self, invoke, tmp_path):
        out = tmp_path / "matches.csv"

        result = invoke("match", "pt-2", "--linked", "--top-k", "1", "--out", str(out))

        assert result.exit_code == 0, result.output
        assert list(pd.read_csv(out)["pharmacist_id"]) == ["rx-2"]

    def test_missing_data_dir(self, clean_env, tmp_path):
        result = runner.invoke(app, ["--data-dir", str(tmp_path / "empty"), "match", "pt-1"])

        assert result.exit_code == 1
        assert "Missing" in result.output


class TestDirectoryCommand:
    def test_anonymous_listing(self, invoke):
        result = invoke("directory")

        assert result.exit_code == 0, result.output
        assert "2 of 2 pharmacists" in result.output

    def test_linked_with_filter(self, invoke, tmp_path):
        out = tmp_path / "listing.csv"

        result = invoke("directory", "--linked", "--experience", "0-3", "--out", str(out))

        assert result.exit_code == 0, result.output
        assert "1 of 3 pharmacists" in result.output
        assert list(pd.read_csv(out)["pharmacist_id"]) == ["rx-2"]

    def test_scored_listing(self, invoke, tmp_path):
        out = tmp_path / "listing.csv"

        result = invoke("directory", "--patient-id", "pt-2", "--out", str(out))

        assert result.exit_code == 0, result.output
        assert list(pd.read_csv(out)["pharmacist_id"]) == ["rx-1", "rx-3"]

    def test_bad_experience_band(self, invoke):
        result = invoke("directory", "--experience", "10+")

        assert result.exit_code != 0


class TestAffinityCommand:
    def test_matrix(self, invoke):
        result = invoke("affinity")

        assert result.exit_code == 0, result.output
        assert "◎" in result.output
        assert "△" in result.output


class TestBadSettings:
    def test_bad_top_k_env(self, clean_env, csv_data_dir):
        clean_env.setenv("PHARMACY_MATCH_TOP_K", "zero")

        result = runner.invoke(app, ["--data-dir", str(csv_data_dir), "affinity"])

        assert result.exit_code == 1
        assert "PHARMACY_MATCH_TOP_K" in result.output
