from __future__ import annotations

from typing import Dict, Iterable, List, Literal, Optional

import pandas as pd
from pydantic import BaseModel

from .data_models import CARE_STYLES, PATIENT_TYPES, Patient, PatientType, Pharmacist, Pharmacy
from .logger import get_logger
from .matching_models import MatchCandidate, MatchReport
from .scorer import ScoreWeights, resolve_patient_type, score_pharmacist


logger = get_logger(__name__)

ExperienceBand = Literal["0-3", "4-7", "8plus"]

# How well each patient type tends to get on with each care style.
# ◎ especially good, ◯ good, △ depends on the situation.
TYPE_STYLE_MATCH: Dict[str, Dict[str, str]] = {
    "A": {
        "understanding": "◎",
        "empathy": "△",
        "expert": "◎",
        "support": "◯",
        "family": "◯",
        "second_opinion": "◎",
    },
    "B": {
        "understanding": "◯",
        "empathy": "◎",
        "expert": "△",
        "support": "◎",
        "family": "◎",
        "second_opinion": "◯",
    },
    "C": {
        "understanding": "◯",
        "empathy": "◎",
        "expert": "◯",
        "support": "◎",
        "family": "△",
        "second_opinion": "◯",
    },
    # foreign-language support is independent of care style
    "D": {style: "◯" for style in CARE_STYLES},
}


def type_style_affinity(patient_type: str, care_style: str) -> str:
    try:
        return TYPE_STYLE_MATCH[patient_type][care_style]
    except KeyError:
        raise ValueError(
            f"Unknown type/care style: {patient_type!r}/{care_style!r} "
            f"(types: {', '.join(PATIENT_TYPES)}; styles: {', '.join(CARE_STYLES)})"
        ) from None


def attach_pharmacies(
    pharmacists: Iterable[Pharmacist], pharmacies: Iterable[Pharmacy]
) -> List[MatchCandidate]:
    """Pair each pharmacist with the pharmacy they belong to (or None)."""
    by_id = {p.id: p for p in pharmacies if p.id is not None}
    candidates = []
    for pharmacist in pharmacists:
        pharmacy = by_id.get(pharmacist.belongs_pharmacy_id) if pharmacist.belongs_pharmacy_id else None
        if pharmacist.belongs_pharmacy_id and pharmacy is None:
            logger.debug(
                "Pharmacist %s points at unknown pharmacy %s",
                pharmacist.id,
                pharmacist.belongs_pharmacy_id,
            )
        candidates.append(MatchCandidate(pharmacist=pharmacist, pharmacy=pharmacy))
    return candidates


def filter_by_access_scope(
    candidates: Iterable[MatchCandidate], is_linked_patient: bool
) -> List[MatchCandidate]:
    """Public profiles always; registered-only profiles for linked patients only."""
    visible = []
    for c in candidates:
        scope = c.pharmacist.access_scope
        if scope == "public" or (scope == "registered_only" and is_linked_patient):
            visible.append(c)
    return visible


def score_candidates(
    patient: Optional[Patient],
    patient_type: Optional[PatientType],
    candidates: Iterable[MatchCandidate],
    weights: Optional[ScoreWeights] = None,
) -> List[MatchCandidate]:
    """Return copies of ``candidates`` with score and reasons filled in.

    Without a patient there is nothing to score against and every score is None.
    """
    scored = []
    for c in candidates:
        if patient is None:
            scored.append(c.model_copy(update={"score": None, "reasons": []}))
            continue
        result = score_pharmacist(patient, patient_type, c.pharmacist, c.pharmacy, weights)
        scored.append(c.model_copy(update={"score": result.score, "reasons": result.reasons}))
    return scored


def rank_candidates(candidates: Iterable[MatchCandidate]) -> List[MatchCandidate]:
    """Highest score first; unscored candidates last; ties keep their input order."""
    return sorted(
        candidates,
        key=lambda c: (c.score is None, -(c.score or 0)),
    )


def recommend(
    patient: Patient,
    pharmacists: Iterable[Pharmacist],
    pharmacies: Iterable[Pharmacy],
    patient_type: Optional[PatientType] = None,
    top_k: int = 3,
    is_linked_patient: bool = False,
    weights: Optional[ScoreWeights] = None,
) -> MatchReport:
    """Build the result-page view for ``patient``.

    Pseudocode:
    1. Pair pharmacists with pharmacies and drop profiles the patient may not see.
    2. Score every visible candidate.
    3. Keep candidates with a positive score, best first, at most ``top_k``.
    4. Separately surface the patient's main pharmacist, whatever their score.
    """
    if top_k < 1:
        raise ValueError("top_k must be at least 1")

    ptype = resolve_patient_type(patient, patient_type)
    visible = filter_by_access_scope(attach_pharmacies(pharmacists, pharmacies), is_linked_patient)
    scored = score_candidates(patient, ptype, visible, weights)

    main_candidate = None
    if patient.main_pharmacist_id:
        main_candidate = next(
            (c for c in scored if c.pharmacist.id == patient.main_pharmacist_id), None
        )

    ranked = rank_candidates(c for c in scored if c.score is not None and c.score > 0)
    logger.debug(
        "Patient %s (type %s): %d visible, %d with positive score",
        patient.id,
        ptype,
        len(scored),
        len(ranked),
    )
    return MatchReport(
        patient_id=patient.id,
        patient_type=ptype,
        candidates=ranked[:top_k],
        main_candidate=main_candidate,
    )


class DirectoryFilter(BaseModel):
    """Directory page filters; None means "all"."""

    keyword: Optional[str] = None
    language: Optional[str] = None
    specialty: Optional[str] = None
    care_style: Optional[str] = None
    area: Optional[str] = None
    experience: Optional[ExperienceBand] = None
    gender: Optional[str] = None
    age_category: Optional[str] = None
    multilingual_only: bool = False


def _keyword_bucket(c: MatchCandidate) -> str:
    ph = c.pharmacist
    pharmacy = c.pharmacy
    parts = [
        ph.name or "",
        pharmacy.name if pharmacy and pharmacy.name else "",
        ph.one_line_message or "",
        ph.consultation_style,
        " ".join(ph.specialties),
        " ".join(ph.languages),
        " ".join(ph.experience_cases),
        pharmacy.area if pharmacy and pharmacy.area else "",
    ]
    return " ".join(parts).casefold()


def _in_band(years: int, band: str) -> bool:
    if band == "0-3":
        return years <= 3
    if band == "4-7":
        return 4 <= years <= 7
    return years >= 8


def _matches(c: MatchCandidate, flt: DirectoryFilter, keyword: str) -> bool:
    ph = c.pharmacist
    if keyword and keyword not in _keyword_bucket(c):
        return False
    if flt.language and flt.language not in ph.languages:
        return False
    if flt.specialty and flt.specialty not in ph.specialties:
        return False
    if flt.care_style and flt.care_style not in ph.care_roles:
        return False
    if flt.area and (c.pharmacy is None or c.pharmacy.area != flt.area):
        return False
    if flt.experience:
        if ph.years_of_experience is None or not _in_band(ph.years_of_experience, flt.experience):
            return False
    if flt.gender and ph.gender != flt.gender:
        return False
    if flt.age_category and ph.age_category != flt.age_category:
        return False
    if flt.multilingual_only and (c.pharmacy is None or not c.pharmacy.has_multilingual_support):
        return False
    return True


def filter_directory(candidates: Iterable[MatchCandidate], flt: DirectoryFilter) -> List[MatchCandidate]:
    keyword = (flt.keyword or "").strip().casefold()
    return [c for c in candidates if _matches(c, flt, keyword)]


def filter_options(candidates: Iterable[MatchCandidate]) -> Dict[str, List[str]]:
    """Distinct values for each directory filter, in first-seen order."""
    options: Dict[str, Dict[str, None]] = {
        "languages": {},
        "specialties": {},
        "care_roles": {},
        "areas": {},
        "genders": {},
        "age_categories": {},
    }
    for c in candidates:
        ph = c.pharmacist
        for lang in ph.languages:
            options["languages"].setdefault(lang)
        for spec in ph.specialties:
            options["specialties"].setdefault(spec)
        for role in ph.care_roles:
            options["care_roles"].setdefault(role)
        if c.pharmacy is not None and c.pharmacy.area:
            options["areas"].setdefault(c.pharmacy.area)
        if ph.gender:
            options["genders"].setdefault(ph.gender)
        if ph.age_category:
            options["age_categories"].setdefault(ph.age_category)
    return {key: list(values) for key, values in options.items()}


def candidates_to_frame(candidates: Iterable[MatchCandidate]) -> pd.DataFrame:
    """Flatten candidates into a tidy DataFrame for display or CSV export."""
    rows = []
    for rank, c in enumerate(candidates, start=1):
        ph = c.pharmacist
        rows.append(
            {
                "rank": rank,
                "pharmacist_id": ph.id,
                "pharmacist_name": ph.name or "",
                "pharmacy_id": c.pharmacy.id if c.pharmacy else None,
                "pharmacy_name": c.pharmacy.name if c.pharmacy and c.pharmacy.name else "",
                "area": c.pharmacy.area if c.pharmacy and c.pharmacy.area else "",
                "languages": ", ".join(ph.languages),
                "specialties": ", ".join(ph.specialties),
                "years_of_experience": ph.years_of_experience,
                "access_scope": ph.access_scope,
                "match_score": c.score,
                "reasons": " / ".join(c.reasons),
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "rank",
            "pharmacist_id",
            "pharmacist_name",
            "pharmacy_id",
            "pharmacy_name",
            "area",
            "languages",
            "specialties",
            "years_of_experience",
            "access_scope",
            "match_score",
            "reasons",
        ],
    )
