"""
Compatibility scoring between a patient and a pharmacist.

Every rule is an independent point addition; the raw total is rounded, clipped
to [0, 100] and returned together with up to three reasons in the order the
rules produced them.

Given identical inputs this module always returns the same score and reasons.
It performs no I/O and does not log.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .data_models import (
    CARE_STYLE_LABELS,
    DEFAULT_LANGUAGE,
    Patient,
    PatientType,
    Pharmacist,
    Pharmacy,
)
from .matching_models import MatchResult


@dataclass(frozen=True)
class ScoreWeights:
    language_match: float = 40.0
    foreign_language_type: float = 10.0
    language_mismatch_penalty: float = 10.0
    symptom_ibs_skin: float = 25.0
    symptom_cancer: float = 30.0
    symptom_mental: float = 25.0
    symptom_lifestyle: float = 20.0
    homecare_need: float = 15.0
    expertise_per_year: float = 2.0
    expertise_cap: float = 20.0
    empathy: float = 20.0
    lifestyle_support: float = 15.0
    multilingual: float = 15.0
    care_style: float = 18.0
    care_role: float = 12.0
    archetype: float = 10.0
    locality: float = 10.0
    severity_per_year: float = 1.5
    severity_cap: float = 15.0


MAX_SCORE = 100
MAX_REASONS = 3

# ---- Vocabularies ----
# Tags are stored in Japanese by the app; English equivalents are accepted too.
KAMPO = ("漢方", "kampo", "herbal medicine")
CONSTITUTION = ("体質改善", "constitution")
MENTAL_HEALTH = ("メンタル", "mental health", "mental")
ONCOLOGY = ("がん", "oncology", "cancer")
HOME_CARE = ("在宅", "home care", "homecare")
ELDERLY_CARE = ("高齢者ケア", "elderly care", "geriatrics")
ONLINE_CONSULTATION = ("オンライン相談", "online consultation")

IBS_CASES = ("IBS",)
SKIN_CASES = ("皮膚", "skin", "dermatology")
MENTAL_CASES = ("不眠", "自律神経失調", "不安障害", "insomnia", "autonomic dysfunction", "anxiety disorder")
PEDIATRIC_CASES = ("小児", "pediatrics")
ELDERLY_CASES = ("高齢者", "elderly")

# Free-text fragments (consultation style / personality).
EXPLAINS_WORDS = ("丁寧", "わかりやす", "説明", "thorough", "clear", "explain")
CAREFUL_WORDS = ("丁寧", "じっくり", "thorough", "take time")
LISTENS_WORDS = ("じっくり", "話を聞く", "take time", "listen")
GENTLE_WORDS = ("やさ", "穏やか", "共感", "gentle", "kind", "calm", "empath")
PLANS_WORDS = ("提案", "方針", "propos", "plan")
ACCOMPANIES_WORDS = ("伴走", "一緒に", "フォロー", "together", "follow")
FAMILY_WORDS = ("家族", "family")
OPTIONS_WORDS = ("整理", "選択肢", "セカンド", "option", "second opinion", "organi")

# Symptom keys per group, in tie-break order. Keys outside these groups count
# towards the trailing "lifestyle" group.
SYMPTOM_GROUPS: Dict[str, Tuple[str, ...]] = {
    "ibs_skin": ("ibs", "skin", "ibs_skin"),
    "cancer": ("cancer",),
    "mental": ("mental", "mental_sleep", "mental_mood", "mental_autonomic"),
}
LIFESTYLE_GROUP = "lifestyle"

_WHITESPACE = re.compile(r"\s+")


def _has_tag(tags: Iterable[str], vocab: Iterable[str]) -> bool:
    folded = {t.casefold() for t in tags}
    return any(v.casefold() in folded for v in vocab)


def _mentions(text: str, words: Iterable[str]) -> bool:
    t = text.casefold()
    return any(w.casefold() in t for w in words)


def _same_area(patient_area: Optional[str], pharmacy_area: Optional[str]) -> bool:
    a = _WHITESPACE.sub("", patient_area or "").casefold()
    b = _WHITESPACE.sub("", pharmacy_area or "").casefold()
    if not a or not b:
        return False
    return a in b or b in a


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def get_main_symptom(symptom_score: Dict[str, float]) -> Optional[str]:
    """Collapse per-symptom flags into the dominant symptom group.

    Returns the group with the highest strictly positive total, the earliest
    declared group on ties, or ``None`` when nothing is flagged.
    """
    grouped = {key for keys in SYMPTOM_GROUPS.values() for key in keys}
    totals = {
        group: sum(symptom_score.get(key, 0.0) for key in keys)
        for group, keys in SYMPTOM_GROUPS.items()
    }
    totals[LIFESTYLE_GROUP] = sum(v for k, v in symptom_score.items() if k not in grouped)

    main, best = None, 0.0
    for group, total in totals.items():
        if total > best:
            main, best = group, total
    return main


def resolve_patient_type(patient: Patient, patient_type: Optional[PatientType] = None) -> PatientType:
    """Explicit type first, then the stored diagnosis type, then "A"."""
    return patient_type or patient.type or "A"


class _Tally:
    def __init__(self) -> None:
        self.total = 0.0
        self.components: Dict[str, float] = {}
        self.reasons: List[str] = []

    def add(self, rule: str, points: float, reason: Optional[str] = None) -> None:
        self.total += points
        self.components[rule] = self.components.get(rule, 0.0) + points
        if reason:
            self.reasons.append(reason)


def _care_style_fits(
    care_style: str,
    pharmacist: Pharmacist,
    services: List[str],
) -> bool:
    style = pharmacist.consultation_style
    personality = pharmacist.personality
    years = pharmacist.years_of_experience or 0
    specialties = pharmacist.specialties
    cases = pharmacist.experience_cases

    if care_style == "understanding":
        return _mentions(style, EXPLAINS_WORDS) or years >= 5
    if care_style == "empathy":
        return _mentions(style, LISTENS_WORDS) or _mentions(personality, GENTLE_WORDS)
    if care_style == "expert":
        return years >= 7 or len(specialties) >= 2 or _mentions(style, PLANS_WORDS)
    if care_style == "support":
        return (
            _mentions(style, ACCOMPANIES_WORDS)
            or _has_tag(services, ONLINE_CONSULTATION)
            or _has_tag(services, HOME_CARE)
        )
    if care_style == "family":
        return (
            _has_tag(cases, PEDIATRIC_CASES)
            or _has_tag(cases, ELDERLY_CASES)
            or _has_tag(specialties, HOME_CARE)
            or _has_tag(services, HOME_CARE)
            or _mentions(style, FAMILY_WORDS)
        )
    if care_style == "second_opinion":
        return _mentions(style, OPTIONS_WORDS) or len(specialties) >= 2 or years >= 5
    return False


CARE_STYLE_REASONS: Dict[str, str] = {
    "understanding": "Explains diagnoses and medicines in a clear, careful way.",
    "empathy": "Takes time to stay with your worries and feelings, not only the medicine.",
    "expert": "Helps set the overall treatment plan based on guidelines and experience.",
    "support": "Works out with you a pace and routine that is easy to keep up.",
    "family": "Easy to consult about your family's medicines and visits as well as your own.",
    "second_opinion": "Helps you lay out treatment options and weigh their pros and cons.",
}


def score_breakdown(
    patient: Patient,
    patient_type: Optional[PatientType],
    pharmacist: Pharmacist,
    pharmacy: Optional[Pharmacy],
    weights: Optional[ScoreWeights] = None,
) -> Tuple[float, Dict[str, float], List[str]]:
    """Evaluate every rule and return ``(raw_total, components, reasons)``.

    The raw total is unclipped and the reasons are neither de-duplicated nor
    truncated; :func:`score_pharmacist` finalises both.
    """
    if weights is None:
        weights = ScoreWeights()
    ptype = resolve_patient_type(patient, patient_type)
    tally = _Tally()

    specialties = pharmacist.specialties
    languages = pharmacist.languages
    cases = pharmacist.experience_cases
    years = pharmacist.years_of_experience or 0
    services = pharmacy.services if pharmacy is not None else []
    offers_home_care = _has_tag(specialties, HOME_CARE) or _has_tag(services, HOME_CARE)

    # 1. language
    patient_language = patient.language or DEFAULT_LANGUAGE
    if patient_language.casefold() in {lang.casefold() for lang in languages}:
        tally.add("language", weights.language_match, "Can consult in your preferred language.")
        if ptype == "D":
            tally.add(
                "language_type_d",
                weights.foreign_language_type,
                "Matches your foreign-language support diagnosis.",
            )
    elif patient_language.casefold() != DEFAULT_LANGUAGE:
        tally.add("language", -weights.language_mismatch_penalty)

    # 2. symptoms x specialties
    main_symptom = get_main_symptom(patient.symptom_score)
    if main_symptom == "ibs_skin":
        if (
            _has_tag(specialties, KAMPO)
            or _has_tag(specialties, CONSTITUTION)
            or _has_tag(cases, IBS_CASES)
            or _has_tag(cases, SKIN_CASES)
        ):
            tally.add(
                "symptom",
                weights.symptom_ibs_skin,
                "Experienced with IBS, skin trouble and constitution care.",
            )
    elif main_symptom == "cancer":
        if _has_tag(specialties, ONCOLOGY) or _has_tag(cases, ONCOLOGY):
            tally.add(
                "symptom",
                weights.symptom_cancer,
                "Used to supporting drug therapy during and after cancer treatment.",
            )
    elif main_symptom == "mental":
        if _has_tag(specialties, MENTAL_HEALTH) or _has_tag(cases, MENTAL_CASES):
            tally.add(
                "symptom",
                weights.symptom_mental,
                "Often consulted on mental health, sleep and autonomic symptoms.",
            )
    elif main_symptom == LIFESTYLE_GROUP:
        if _has_tag(specialties, HOME_CARE) or _has_tag(specialties, ELDERLY_CARE):
            tally.add(
                "symptom",
                weights.symptom_lifestyle,
                "Strong in home care, lifestyle disease and elderly care support.",
            )

    if patient.lifestyle_score.get("support_homecare") == 1 and offers_home_care:
        tally.add(
            "homecare_need",
            weights.homecare_need,
            "Fits your need for home visits and home care.",
        )

    # 3. value preference
    value = patient.value_preference
    if value == "expertise":
        # reason is emitted even when there is no recorded experience
        tally.add(
            "value_preference",
            min(years * weights.expertise_per_year, weights.expertise_cap),
            f"Has {years} years of experience, a good fit if you value expertise.",
        )
    elif value == "empathy":
        if _mentions(pharmacist.consultation_style, CAREFUL_WORDS) or _mentions(
            pharmacist.personality, GENTLE_WORDS
        ):
            tally.add(
                "value_preference",
                weights.empathy,
                "Listens closely and responds with empathy.",
            )
    elif value == "lifestyle_support":
        if offers_home_care or _has_tag(services, ONLINE_CONSULTATION):
            tally.add(
                "value_preference",
                weights.lifestyle_support,
                "Good at practical advice that fits around daily life and work.",
            )
    elif value == "multilingual":
        if len(languages) > 1:
            tally.add(
                "value_preference",
                weights.multilingual,
                "Can communicate in more than one language.",
            )

    # 4. care style; the explicit care-role match is the stronger signal
    care_style = patient.care_style
    if care_style:
        if care_style in pharmacist.care_roles:
            label = CARE_STYLE_LABELS[care_style]
            tally.add(
                "care_role",
                weights.care_role,
                f'Registered with a care role for patients who {label}.',
            )
        if _care_style_fits(care_style, pharmacist, services):
            tally.add("care_style", weights.care_style, CARE_STYLE_REASONS[care_style])

    # 5. patient type
    if ptype == "A":
        if len(specialties) >= 2:
            tally.add("patient_type", weights.archetype, "An all-rounder with several areas of expertise.")
    elif ptype == "B":
        if offers_home_care:
            tally.add(
                "patient_type",
                weights.archetype,
                "Good at ongoing support that includes daily life and home care.",
            )
    elif ptype == "C":
        if (
            _has_tag(specialties, KAMPO)
            or _has_tag(specialties, CONSTITUTION)
            or _has_tag(specialties, MENTAL_HEALTH)
        ):
            tally.add(
                "patient_type",
                weights.archetype,
                "Focuses on kampo, constitution and mental care.",
            )

    # 6. locality
    if pharmacy is not None and _same_area(patient.area, pharmacy.area):
        tally.add("locality", weights.locality, "Belongs to a pharmacy close to where you live.")

    # 7. severity
    if patient.severity == "severe":
        points = min(years * weights.severity_per_year, weights.severity_cap)
        if points > 0:
            tally.add("severity", points)

    return tally.total, tally.components, tally.reasons


def score_pharmacist(
    patient: Patient,
    patient_type: Optional[PatientType],
    pharmacist: Pharmacist,
    pharmacy: Optional[Pharmacy],
    weights: Optional[ScoreWeights] = None,
) -> MatchResult:
    """Score ``pharmacist`` (working at ``pharmacy``, if any) for ``patient``.

    Args:
        patient: Diagnosis answers.
        patient_type: A-D archetype; falls back to ``patient.type`` then "A".
        pharmacist: Candidate profile.
        pharmacy: The pharmacist's pharmacy, or ``None`` when unassigned. Area
            and service rules simply do not fire without one.
        weights: Point constants; defaults to :class:`ScoreWeights`.

    Returns:
        MatchResult with the clipped integer score and at most three unique
        reasons, first generated first kept.
    """
    raw, components, reasons = score_breakdown(patient, patient_type, pharmacist, pharmacy, weights)
    score = max(0, min(MAX_SCORE, _round_half_up(raw)))
    unique_reasons = list(dict.fromkeys(reasons))[:MAX_REASONS]
    return MatchResult(score=score, reasons=unique_reasons, components=components)
