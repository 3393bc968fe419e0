# pydantic models for the matching results
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from .data_models import Pharmacist, Pharmacy, PatientType


class MatchResult(BaseModel):
    """Outcome of scoring one pharmacist for one patient.

    Fields:
        score: Compatibility score, rounded and clipped to [0, 100].
        reasons: Up to three unique, human-readable justifications in the order
            the rules produced them.
        components: Raw points contributed by each rule that fired, keyed by rule
            name. Informational only; the score is not derived from this field.
    """

    score: int = Field(default=0, ge=0, le=100, description="Compatibility score between 0 and 100")
    reasons: List[str] = Field(default_factory=list, max_length=3)
    components: Dict[str, float] = Field(default_factory=dict)


class MatchCandidate(BaseModel):
    """A pharmacist paired with their pharmacy and (optionally) a score.

    ``score`` stays ``None`` when there is no patient to score against, e.g. when
    browsing the directory anonymously.
    """

    pharmacist: Pharmacist
    pharmacy: Optional[Pharmacy] = None
    score: Optional[int] = None
    reasons: List[str] = Field(default_factory=list)


class MatchReport(BaseModel):
    """What the result page shows for a patient."""

    patient_id: Optional[str] = None
    patient_type: PatientType
    candidates: List[MatchCandidate] = Field(default_factory=list)
    main_candidate: Optional[MatchCandidate] = None
