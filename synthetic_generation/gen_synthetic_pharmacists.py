#!/usr/bin/env python3
"""Generate synthetic patients, pharmacists and pharmacies for local development."""

import argparse
import json
import os
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import shortuuid
from dotenv import load_dotenv

# Ensure project root (parent of synthetic_generation/) is on sys.path for package imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from synthetic_generation.synth_models import (  # noqa: E402
    SyntheticPatient,
    SyntheticPharmacist,
    SyntheticPharmacy,
)


AREAS = ["渋谷区", "新宿区", "世田谷区", "港区", "横浜市", "川崎市"]
SERVICES = ["在宅", "オンライン相談", "漢方相談", "英語対応", "24時間対応"]
SPECIALTIES = ["漢方", "体質改善", "がん", "メンタル", "在宅", "高齢者ケア", "小児", "生活習慣病"]
LANGUAGES = ["ja", "en", "zh", "vi", "ko"]
CASES = ["IBS", "皮膚", "がん", "不眠", "自律神経失調", "不安障害", "小児", "高齢者"]
STYLES = [
    "丁寧でわかりやすい説明を心がけています",
    "じっくり話を聞くことを大切にしています",
    "ガイドラインに沿って方針を提案します",
    "一緒に伴走しながらフォローします",
    "ご家族の相談にも対応します",
    "選択肢を整理してセカンドオピニオン的に関わります",
]
PERSONALITIES = ["やさしい", "穏やか", "共感的", "論理的", "明るい"]
CARE_STYLES = ["understanding", "empathy", "expert", "support", "family", "second_opinion"]
SYMPTOM_KEYS = [
    "ibs", "skin", "cancer", "mental_sleep", "mental_mood",
    "mental_autonomic", "pain", "cold_edema", "other_body",
]
LIFESTYLE_KEYS = ["support_homecare", "metabolic", "diet_exercise", "child_care", "elder_care", "other_life"]
FAMILY_NAMES = ["佐藤", "鈴木", "高橋", "田中", "伊藤", "渡辺", "山本", "中村"]
GIVEN_NAMES = ["花子", "太郎", "美咲", "健", "陽菜", "大輔", "さくら", "翔"]


def generate_synthetic_id(namespace: str, index: int, seed: int) -> str:
    """Deterministic short UUID so the same seed reproduces the same ids."""
    return shortuuid.uuid(name=f"{namespace}-{seed}-{index}")


def _flags(rng: random.Random, keys: List[str], k: int) -> Dict[str, int]:
    chosen = set(rng.sample(keys, k))
    return {key: int(key in chosen) for key in keys}


def make_pharmacies(rng: random.Random, count: int, seed: int) -> List[Dict[str, Any]]:
    rows = []
    for i in range(count):
        row = SyntheticPharmacy(
            id=generate_synthetic_id("pharmacy", i, seed),
            name=f"{rng.choice(FAMILY_NAMES)}薬局 {i + 1}号店",
            area=rng.choice(AREAS),
            services=rng.sample(SERVICES, rng.randint(0, 3)),
            has_multilingual_support=rng.random() < 0.3,
        )
        rows.append(row.model_dump())
    return rows


def make_pharmacists(
    rng: random.Random, count: int, seed: int, pharmacy_ids: List[str]
) -> List[Dict[str, Any]]:
    rows = []
    for i in range(count):
        languages = ["ja"] + rng.sample(LANGUAGES[1:], rng.randint(0, 2))
        row = SyntheticPharmacist(
            id=generate_synthetic_id("pharmacist", i, seed),
            name=f"{rng.choice(FAMILY_NAMES)} {rng.choice(GIVEN_NAMES)}",
            # a few pharmacists are not attached to a pharmacy yet
            belongs_pharmacy_id=rng.choice(pharmacy_ids) if pharmacy_ids and rng.random() < 0.9 else None,
            specialty=rng.sample(SPECIALTIES, rng.randint(1, 3)),
            language=languages,
            experience_case=rng.sample(CASES, rng.randint(0, 3)),
            years_of_experience=rng.randint(1, 25),
            consultation_style=rng.choice(STYLES),
            personality=rng.choice(PERSONALITIES),
            care_role=rng.sample(CARE_STYLES, rng.randint(1, 2)),
            visibility="public" if rng.random() < 0.8 else "members",
            gender=rng.choice(["女性", "男性", "その他"]),
            age_category=rng.choice(["20代", "30代", "40代", "50代", "60代", "70代以上"]),
        )
        rows.append(row.model_dump())
    return rows


def make_patients(
    rng: random.Random, count: int, seed: int, pharmacist_ids: List[str]
) -> List[Dict[str, Any]]:
    rows = []
    for i in range(count):
        patient_type = rng.choice(["A", "B", "C", "D"])
        language = rng.choice(LANGUAGES[1:]) if patient_type == "D" else "ja"
        row = SyntheticPatient(
            id=generate_synthetic_id("patient", i, seed),
            language=language,
            area=rng.choice(AREAS + [None]),
            severity=rng.choice(["mild", "moderate", "severe"]),
            value_preference=rng.choice(["expertise", "empathy", "lifestyle_support", "multilingual"]),
            care_style=rng.choice(CARE_STYLES),
            symptom_score=_flags(rng, SYMPTOM_KEYS, rng.randint(1, 3)),
            lifestyle_score=_flags(rng, LIFESTYLE_KEYS, rng.randint(0, 2)),
            type=patient_type,
            main_pharmacist_id=rng.choice(pharmacist_ids) if pharmacist_ids and rng.random() < 0.2 else None,
        )
        rows.append(row.model_dump())
    return rows


def to_frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    """List and mapping cells are written as JSON so they survive the CSV round trip."""
    df = pd.DataFrame(rows)
    for col in df.columns:
        if df[col].map(lambda v: isinstance(v, (list, dict))).any():
            df[col] = df[col].map(lambda v: json.dumps(v, ensure_ascii=False) if v is not None else None)
    return df


def write_tables(
    out_dir: Path,
    patients: int,
    pharmacists: int,
    pharmacies: int,
    seed: int = 0,
) -> Dict[str, Path]:
    """Generate all three tables and write them as CSV into ``out_dir``."""
    rng = random.Random(seed)
    pharmacy_rows = make_pharmacies(rng, pharmacies, seed)
    pharmacist_rows = make_pharmacists(rng, pharmacists, seed, [r["id"] for r in pharmacy_rows])
    patient_rows = make_patients(rng, patients, seed, [r["id"] for r in pharmacist_rows])

    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {}
    tables: Dict[str, List[Dict[str, Any]]] = {
        "pharmacies": pharmacy_rows,
        "pharmacists": pharmacist_rows,
        "patients": patient_rows,
    }
    for table, rows in tables.items():
        path = out_dir / f"{table}.csv"
        to_frame(rows).to_csv(path, index=False)
        paths[table] = path
    return paths


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Generate synthetic matching data.")
    parser.add_argument("--patients", type=int, default=20, help="Number of patients")
    parser.add_argument("--pharmacists", type=int, default=30, help="Number of pharmacists")
    parser.add_argument("--pharmacies", type=int, default=8, help="Number of pharmacies")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path(os.environ.get("PHARMACY_MATCH_DATA_DIR", "").strip() or "data"),
        help="Output directory (default: $PHARMACY_MATCH_DATA_DIR or data)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for CLI execution."""
    # .env may point PHARMACY_MATCH_DATA_DIR somewhere other than data/
    load_dotenv()
    args = parse_args(argv)
    print(
        f"Generating {args.patients} patients, {args.pharmacists} pharmacists, "
        f"{args.pharmacies} pharmacies (seed={args.seed})..."
    )
    paths = write_tables(args.out_dir, args.patients, args.pharmacists, args.pharmacies, seed=args.seed)
    for table, path in paths.items():
        print(f"Saved {table} to {path}")


if __name__ == "__main__":
    main()
