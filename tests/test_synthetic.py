"""
Tests for the synthetic data generator.
"""

import pandas as pd

from pharmacy_match.recommender import recommend
from pharmacy_match.repository import FileRepository
from synthetic_generation.gen_synthetic_pharmacists import generate_synthetic_id, main, write_tables


class TestGenerator:
    def test_ids_are_deterministic(self):
        assert generate_synthetic_id("patient", 0, 1) == generate_synthetic_id("patient", 0, 1)
        assert generate_synthetic_id("patient", 0, 1) != generate_synthetic_id("patient", 0, 2)
        assert generate_synthetic_id("patient", 0, 1) != generate_synthetic_id("pharmacist", 0, 1)

    def test_same_seed_same_tables(self, tmp_path):
        first = write_tables(tmp_path / "a", patients=5, pharmacists=6, pharmacies=2, seed=7)
        second = write_tables(tmp_path / "b", patients=5, pharmacists=6, pharmacies=2, seed=7)

        for table in ("patients", "pharmacists", "pharmacies"):
            pd.testing.assert_frame_equal(pd.read_csv(first[table]), pd.read_csv(second[table]))

    def test_tables_load_and_rank(self, tmp_path):
        write_tables(tmp_path, patients=8, pharmacists=15, pharmacies=4, seed=0)
        repo = FileRepository(tmp_path)

        patients = repo.list_patients()
        pharmacists = repo.list_pharmacists()
        pharmacies = repo.list_pharmacies()

        assert len(patients) == 8
        assert len(pharmacists) == 15
        assert len(pharmacies) == 4
        assert all(p.is_diagnosis_complete() for p in patients)
        pharmacy_ids = {p.id for p in pharmacies}
        assert all(ph.belongs_pharmacy_id in pharmacy_ids for ph in pharmacists if ph.belongs_pharmacy_id)

        for patient in patients:
            report = recommend(patient, pharmacists, pharmacies, top_k=3, is_linked_patient=True)
            scores = [c.score for c in report.candidates]
            assert len(scores) <= 3
            assert scores == sorted(scores, reverse=True)
            assert all(0 < s <= 100 for s in scores)

    def test_main_writes_to_out_dir(self, tmp_path, capsys):
        main(["--patients", "2", "--pharmacists", "3", "--pharmacies", "1", "--out-dir", str(tmp_path)])

        assert (tmp_path / "patients.csv").exists()
        assert "Saved pharmacists" in capsys.readouterr().out

    def test_out_dir_defaults_to_configured_data_dir(self, clean_env, tmp_path):
        """Without --out-dir the tables land in PHARMACY_MATCH_DATA_DIR."""
        clean_env.setenv("PHARMACY_MATCH_DATA_DIR", str(tmp_path / "configured"))

        main(["--patients", "1", "--pharmacists", "2", "--pharmacies", "1"])

        assert (tmp_path / "configured" / "pharmacists.csv").exists()

    def test_out_dir_falls_back_to_data(self, clean_env, tmp_path):
        main(["--patients", "1", "--pharmacists", "1", "--pharmacies", "1"])

        assert (tmp_path / "data" / "patients.csv").exists()
