from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import pandas as pd
from pydantic import BaseModel, ValidationError

from .data_models import Patient, Pharmacist, Pharmacy, blank_to_none
from .logger import get_logger


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class IngestError(ValueError):
    """Raised when an exported row cannot be turned into a model."""


PATIENT_ALIASES: Dict[str, List[str]] = {
    "id": ["id", "patient_id"],
    "name": ["name"],
    "language": ["language", "preferred_language"],
    "area": ["area"],
    "severity": ["severity"],
    "value_preference": ["value_preference"],
    "care_style": ["care_style"],
    "symptom_score": ["symptom_score"],
    "lifestyle_score": ["lifestyle_score"],
    "type": ["type", "patient_type"],
    "main_pharmacist_id": ["main_pharmacist_id"],
    "pharmacy_id": ["pharmacy_id"],
    "comm_style": ["comm_style"],
    "explanation_depth": ["explanation_depth"],
    "followup_frequency": ["followup_frequency"],
    "channel_preference": ["channel_preference"],
}

PHARMACIST_ALIASES: Dict[str, List[str]] = {
    "id": ["id", "pharmacist_id"],
    "name": ["name"],
    "specialties": ["specialty", "specialties"],
    "languages": ["language", "languages"],
    "experience_cases": ["experience_case", "experience_cases"],
    "years_of_experience": ["years_of_experience"],
    "consultation_style": ["consultation_style"],
    "personality": ["personality"],
    "care_roles": ["care_role", "care_roles"],
    "belongs_pharmacy_id": ["belongs_pharmacy_id", "pharmacy_id"],
    "access_scope": ["access_scope", "visibility"],
    "gender": ["gender"],
    "age_category": ["age_category"],
    "one_line_message": ["one_line_message", "short_message"],
}

PHARMACY_ALIASES: Dict[str, List[str]] = {
    "id": ["id", "pharmacy_id"],
    "name": ["name"],
    "area": ["area"],
    "services": ["services"],
    "has_multilingual_support": ["has_multilingual_support"],
}


def get_alias_column(df: pd.DataFrame, aliases: Dict[str, List[str]], key: str) -> Optional[str]:
    for candidate in aliases.get(key, []):
        if candidate in df.columns:
            return candidate
    return None


def resolve_aliases(df: pd.DataFrame, aliases: Dict[str, List[str]]) -> Dict[str, Optional[str]]:
    return {key: get_alias_column(df, aliases, key) for key in aliases}


def read_table(path: Path) -> pd.DataFrame:
    """Read an exported table (CSV or JSON records) into a DataFrame."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        # keep ids as strings; numeric coercion happens in the models
        return pd.read_csv(path, dtype=str, keep_default_na=True)
    if suffix == ".json":
        return pd.read_json(path, orient="records", dtype=False)
    raise ValueError(f"Unsupported table format: {path.name} (expected .csv or .json)")


def clean_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Strip headers and string cells; NaN and blank strings become None."""
    out = df.copy().astype(object)
    out.columns = [col.strip() if isinstance(col, str) else col for col in out.columns]
    for col in out.columns:
        out[col] = out[col].map(lambda v: (v.strip() or None) if isinstance(v, str) else v)
    # last, so per-column dtype inference cannot turn None back into NaN
    out = out.astype(object)
    return out.where(pd.notnull(out), None)


def _rows_to_models(
    df: pd.DataFrame,
    aliases: Dict[str, List[str]],
    model: Type[ModelT],
    label: str,
) -> List[ModelT]:
    cleaned = clean_frame(df)
    alias_map = resolve_aliases(cleaned, aliases)
    if alias_map["id"] is None and not cleaned.empty:
        raise IngestError(f"{label} table has no id column (tried: {', '.join(aliases['id'])})")
    missing = [key for key, col in alias_map.items() if col is None]
    if missing:
        logger.debug("%s table has no column for: %s", label, ", ".join(missing))

    records: List[ModelT] = []
    for position, (_, row) in enumerate(cleaned.iterrows()):
        payload: Dict[str, Any] = {
            field: row[col] for field, col in alias_map.items() if col is not None
        }
        if blank_to_none(payload.get("id")) is None:
            raise IngestError(f"{label} row #{position} has no id")
        try:
            records.append(model.model_validate(payload))
        except ValidationError as exc:
            row_id = payload.get("id") or f"#{position}"
            raise IngestError(f"Invalid {label} row {row_id}: {exc}") from exc
    logger.debug("Loaded %d %s rows", len(records), label)
    return records


def patients_from_frame(df: pd.DataFrame) -> List[Patient]:
    return _rows_to_models(df, PATIENT_ALIASES, Patient, "patient")


def pharmacists_from_frame(df: pd.DataFrame) -> List[Pharmacist]:
    return _rows_to_models(df, PHARMACIST_ALIASES, Pharmacist, "pharmacist")


def pharmacies_from_frame(df: pd.DataFrame) -> List[Pharmacy]:
    return _rows_to_models(df, PHARMACY_ALIASES, Pharmacy, "pharmacy")


TABLE_LOADERS: Dict[str, Callable[[pd.DataFrame], List[Any]]] = {
    "patients": patients_from_frame,
    "pharmacists": pharmacists_from_frame,
    "pharmacies": pharmacies_from_frame,
}
