#!/usr/bin/env python3
# pyright: reportMissingImports=false, reportMissingTypeStubs=false
"""Pydantic models for synthetic development data.

These models define the rows the generator writes and validate them before
they hit disk, so the tables always load cleanly through pharmacy_match.ingest.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


Gender = Literal["女性", "男性", "その他"]

AgeCategory = Literal["20代", "30代", "40代", "50代", "60代", "70代以上"]

Visibility = Literal["public", "members"]


class SyntheticPharmacy(BaseModel):
    """Schema for a single synthetic pharmacy row."""

    id: str = Field(..., description="Short UUID")
    name: str = Field(..., min_length=1)
    area: str = Field(..., min_length=1, description="Locality, e.g. a ward name")
    services: List[str] = Field(default_factory=list)
    has_multilingual_support: bool = False


class SyntheticPharmacist(BaseModel):
    """Schema for a single synthetic pharmacist row.

    Field names follow the store's column names (singular list columns).
    """

    id: str = Field(..., description="Short UUID")
    name: str = Field(..., min_length=1, description="Fabricated, non-PII name")
    belongs_pharmacy_id: Optional[str] = None
    specialty: List[str] = Field(default_factory=list)
    language: List[str] = Field(default_factory=list)
    experience_case: List[str] = Field(default_factory=list)
    years_of_experience: int = Field(..., ge=0, le=50)
    consultation_style: str = ""
    personality: str = ""
    care_role: List[str] = Field(default_factory=list)
    visibility: Visibility = "public"
    gender: Optional[Gender] = None
    age_category: Optional[AgeCategory] = None


class SyntheticPatient(BaseModel):
    """Schema for a single synthetic patient (completed diagnosis)."""

    id: str = Field(..., description="Short UUID")
    language: str = "ja"
    area: Optional[str] = None
    severity: Literal["mild", "moderate", "severe"]
    value_preference: Literal["expertise", "empathy", "lifestyle_support", "multilingual"]
    care_style: Literal["understanding", "empathy", "expert", "support", "family", "second_opinion"]
    symptom_score: Dict[str, int]
    lifestyle_score: Dict[str, int]
    type: Literal["A", "B", "C", "D"]
    main_pharmacist_id: Optional[str] = None
