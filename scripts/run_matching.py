"""Rank pharmacists for every patient in a data directory.

Pseudocode:
1) Load settings (.env / environment) and build the repository
2) Load patients, pharmacists and pharmacies
3) For each patient run pharmacy_match.recommender.recommend
4) Save one row per (patient, candidate) to OUTPUT_CSV and print a brief summary

Notes:
- Without SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY the tables are read from
  PHARMACY_MATCH_DATA_DIR (see synthetic_generation/gen_synthetic_pharmacists.py).
- Patients are treated as linked, so registered-only profiles are included.
"""

from __future__ import annotations

from pathlib import Path
import sys
import pandas as pd

# Ensure project root (parent of scripts/) is on sys.path for package imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pharmacy_match.config import Settings
from pharmacy_match.logger import configure_logging
from pharmacy_match.recommender import candidates_to_frame, recommend
from pharmacy_match.repository import build_repository


OUTPUT_CSV = Path("data/matches.csv")


def main() -> None:
    """Entry point to rank every patient known to the configured repository."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    repo = build_repository(settings)

    # 1) Load records
    print(f"[1/3] Loading records ({settings.backend} backend)...")
    patients = repo.list_patients()
    pharmacists = repo.list_pharmacists()
    pharmacies = repo.list_pharmacies()
    print(f"       {len(patients)} patients, {len(pharmacists)} pharmacists, {len(pharmacies)} pharmacies.")

    # 2) Rank
    print(f"[2/3] Ranking (top_k={settings.top_k})...")
    frames = []
    for done, patient in enumerate(patients, start=1):
        report = recommend(
            patient,
            pharmacists,
            pharmacies,
            top_k=settings.top_k,
            is_linked_patient=True,
        )
        frame = candidates_to_frame(report.candidates)
        frame.insert(0, "patient_type", report.patient_type)
        frame.insert(0, "patient_id", patient.id)
        frames.append(frame)
        if done % 10 == 0 or done == len(patients):
            print(f"   - [{done}/{len(patients)}] last: {patient.id} -> {len(report.candidates)} matches")

    matches_df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()

    # 3) Save results
    print(f"[3/3] Saving results to {OUTPUT_CSV}...")
    OUTPUT_CSV.parent.mkdir(parents=True, exist_ok=True)
    matches_df.to_csv(OUTPUT_CSV, index=False)
    print(f"Done. Wrote {len(matches_df)} rows to {OUTPUT_CSV}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:
        print(f"Error: {exc}")
        sys.exit(1)
