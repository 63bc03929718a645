"""
Schemas for patient actor personas
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StructuredProfileFields(BaseModel):
    """Structured clinical profile; every field optional on input"""

    demographics: Optional[str] = None
    chief_complaint: Optional[str] = None
    medical_history: Optional[str] = None
    medications: Optional[str] = None
    social_history: Optional[str] = None
    personality: Optional[str] = None
    physical_findings: Optional[str] = None
    additional_symptoms: Optional[str] = None
    revelation_level: Optional[str] = None
    stay_in_character: Optional[bool] = None
    avoid_medical_jargon: Optional[bool] = None
    provide_feedback: Optional[bool] = None
    custom_instructions: Optional[str] = None


class PatientActorCreate(StructuredProfileFields):
    # Types are checked by the registry so errors share one format
    name: str
    age: int
    prompt: Optional[str] = None
    is_public: bool = False


class PatientActorUpdate(StructuredProfileFields):
    """Partial patch; absent fields are left untouched"""

    name: Optional[str] = None
    age: Optional[int] = None
    prompt: Optional[str] = None
    is_public: Optional[bool] = None


class PatientActorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    age: int
    slug: str
    is_public: bool
    prompt: str = ""
    demographics: str = ""
    chief_complaint: str = ""
    medical_history: str = ""
    medications: str = ""
    social_history: str = ""
    personality: str = ""
    physical_findings: str = ""
    additional_symptoms: str = ""
    revelation_level: str = "moderate"
    stay_in_character: bool = True
    avoid_medical_jargon: bool = True
    provide_feedback: bool = True
    custom_instructions: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicPatientActorResponse(BaseModel):
    """What a guest sees on the shareable page: no prompt material"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    age: int
    slug: str


class PromptPreviewResponse(BaseModel):
    patient_actor_id: str
    source: str = Field(..., description="'legacy' or 'structured'")
    prompt: str
