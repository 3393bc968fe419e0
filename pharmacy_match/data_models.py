import json
import math
import re
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator


PatientType = Literal["A", "B", "C", "D"]
Severity = Literal["mild", "moderate", "severe"]
ValuePreference = Literal["expertise", "empathy", "lifestyle_support", "multilingual"]
CareStyle = Literal[
    "understanding",
    "empathy",
    "expert",
    "support",
    "family",
    "second_opinion",
]
AccessScope = Literal["public", "registered_only", "hidden"]

PATIENT_TYPES = get_args(PatientType)
CARE_STYLES = get_args(CareStyle)
DEFAULT_LANGUAGE = "ja"

PATIENT_TYPE_LABELS: Dict[str, str] = {
    "A": "Type A: expertise-focused",
    "B": "Type B: lifestyle support",
    "C": "Type C: mind and body",
    "D": "Type D: foreign-language support",
}

CARE_STYLE_LABELS: Dict[str, str] = {
    "understanding": "wants a thorough understanding",
    "empathy": "wants emotional support",
    "expert": "leaves it to the expert",
    "support": "struggles to keep it up",
    "family": "supports the family",
    "second_opinion": "compares the options",
}

_LIST_SPLIT = re.compile(r"[、,]")


def to_str_list(value: Any) -> List[str]:
    """Coerce a stored list column into a list of stripped strings.

    The store hands back ``text[]`` columns as lists, but exports and older rows
    also carry JSON-array strings or comma/ideographic-comma delimited text.
    """
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    if isinstance(value, str):
        s = value.strip()
        if s.startswith("[") and s.endswith("]"):
            try:
                value = json.loads(s)
            except ValueError:
                value = _LIST_SPLIT.split(s.strip("[]"))
        else:
            value = _LIST_SPLIT.split(s)
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    out = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip().strip('"').strip()
        if text:
            out.append(text)
    return out


def to_flag_map(value: Any) -> Dict[str, float]:
    if value is None:
        return {}
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return {}
        try:
            value = json.loads(s)
        except ValueError:
            return {}
    if not isinstance(value, dict):
        return {}
    flags: Dict[str, float] = {}
    for key, raw in value.items():
        if isinstance(raw, bool):
            flags[str(key)] = float(raw)
            continue
        try:
            num = float(raw)
        except (TypeError, ValueError):
            continue
        if not math.isnan(num):
            flags[str(key)] = num
    return flags


def blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _choice_or_none(value: Any, choices: tuple) -> Optional[str]:
    value = blank_to_none(value)
    if value is None:
        return None
    text = str(value).strip()
    return text if text in choices else None


class Patient(BaseModel):
    """Diagnosis answers for a single patient.

    Only the fields consumed by the scorer are typed strictly. Enum-like answers
    that are blank or unknown collapse to ``None`` so a half-filled quiz still
    produces a (lower) score.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    area: Optional[str] = None
    severity: Optional[Severity] = None
    value_preference: Optional[ValuePreference] = None
    care_style: Optional[CareStyle] = None
    symptom_score: Dict[str, float] = Field(default_factory=dict)
    lifestyle_score: Dict[str, float] = Field(default_factory=dict)
    type: Optional[PatientType] = None
    main_pharmacist_id: Optional[str] = None
    pharmacy_id: Optional[str] = None

    # Carried through from the quiz; not used for scoring.
    comm_style: List[str] = Field(default_factory=list)
    explanation_depth: Optional[str] = None
    followup_frequency: Optional[str] = None
    channel_preference: Optional[str] = None

    @field_validator("id", "main_pharmacist_id", "pharmacy_id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else str(v)

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, v: Any) -> str:
        v = blank_to_none(v)
        return DEFAULT_LANGUAGE if v is None else str(v).strip()

    @field_validator(
        "name", "area", "explanation_depth", "followup_frequency", "channel_preference",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else str(v)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v: Any) -> Optional[str]:
        return _choice_or_none(v, get_args(Severity))

    @field_validator("value_preference", mode="before")
    @classmethod
    def _value_preference(cls, v: Any) -> Optional[str]:
        return _choice_or_none(v, get_args(ValuePreference))

    @field_validator("care_style", mode="before")
    @classmethod
    def _care_style(cls, v: Any) -> Optional[str]:
        return _choice_or_none(v, CARE_STYLES)

    @field_validator("type", mode="before")
    @classmethod
    def _patient_type(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else _choice_or_none(str(v).upper(), PATIENT_TYPES)

    @field_validator("symptom_score", "lifestyle_score", mode="before")
    @classmethod
    def _flags(cls, v: Any) -> Dict[str, float]:
        return to_flag_map(v)

    @field_validator("comm_style", mode="before")
    @classmethod
    def _comm_style(cls, v: Any) -> List[str]:
        return to_str_list(v)

    def is_diagnosis_complete(self) -> bool:
        """Same gating the quiz applies before a diagnosis can be submitted."""
        if self.severity is None or self.care_style is None:
            return False
        flagged = sum(self.symptom_score.values()) + sum(self.lifestyle_score.values())
        return flagged > 0


class Pharmacist(BaseModel):
    """A pharmacist profile.

    Column names in the store are singular (``specialty``, ``language``,
    ``experience_case``, ``care_role``, ``visibility``); they are accepted as
    aliases for the plural attribute names used in code.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    specialties: List[str] = Field(default_factory=list, alias="specialty")
    languages: List[str] = Field(default_factory=list, alias="language")
    experience_cases: List[str] = Field(default_factory=list, alias="experience_case")
    years_of_experience: Optional[int] = None
    consultation_style: str = ""
    personality: str = ""
    care_roles: List[CareStyle] = Field(default_factory=list, alias="care_role")
    belongs_pharmacy_id: Optional[str] = None
    access_scope: AccessScope = Field(default="public", alias="visibility")
    gender: Optional[str] = None
    age_category: Optional[str] = None
    one_line_message: Optional[str] = None

    @field_validator("id", "belongs_pharmacy_id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else str(v)

    @field_validator("specialties", "languages", "experience_cases", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> List[str]:
        return to_str_list(v)

    @field_validator("care_roles", mode="before")
    @classmethod
    def _care_roles(cls, v: Any) -> List[str]:
        return [role for role in to_str_list(v) if role in CARE_STYLES]

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def _years(cls, v: Any) -> Optional[int]:
        v = blank_to_none(v)
        if v is None:
            return None
        try:
            years = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return None
        return max(years, 0)

    @field_validator("consultation_style", "personality", mode="before")
    @classmethod
    def _free_text(cls, v: Any) -> str:
        v = blank_to_none(v)
        return "" if v is None else str(v)

    @field_validator("name", "gender", "age_category", "one_line_message", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else str(v)

    @field_validator("access_scope", mode="before")
    @classmethod
    def _access_scope(cls, v: Any) -> str:
        v = blank_to_none(v)
        if v is None:
            return "public"
        scope = str(v).strip().lower()
        if scope == "public":
            return "public"
        if scope in ("members", "registered_only"):
            return "registered_only"
        return "hidden"


class Pharmacy(BaseModel):
    """A pharmacy (store) a pharmacist belongs to."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    area: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    has_multilingual_support: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else str(v)

    @field_validator("name", "area", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        v = blank_to_none(v)
        return None if v is None else str(v)

    @field_validator("services", mode="before")
    @classmethod
    def _services(cls, v: Any) -> List[str]:
        return to_str_list(v)

    @field_validator("has_multilingual_support", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        v = blank_to_none(v)
        if v is None:
            return False
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes", "t")
        return bool(v)
