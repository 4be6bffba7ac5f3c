"""
Candidate Profile Schema

Read-only view of a performer profile as returned by the candidate store.
Rows carry the embedded sub-collections (skills, certifications, photos,
project submissions) under their table names; unknown columns are ignored.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Sub-models
# ============================================================================

class ProfileSkill(BaseModel):
    """A declared skill with optional proficiency"""
    model_config = ConfigDict(extra="ignore")

    skill_id: str
    proficiency_level: Optional[str] = None
    years_experience: Optional[float] = None


class ProfileCertification(BaseModel):
    """A certification held by the performer"""
    model_config = ConfigDict(extra="ignore")

    certification_id: str
    date_obtained: Optional[str] = None
    expiration_date: Optional[str] = None
    certification_number: Optional[str] = None


class ProfilePhoto(BaseModel):
    """Photo metadata (the file itself lives elsewhere)"""
    model_config = ConfigDict(extra="ignore")

    file_path: str = ""
    file_name: Optional[str] = None
    is_primary: bool = False
    sort_order: Optional[int] = None


class ProjectSubmission(BaseModel):
    """Roster membership: the profile was submitted to a project database"""
    model_config = ConfigDict(extra="ignore")

    project_id: str

    @field_validator("project_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return str(value) if value is not None else value


# ============================================================================
# Main Schema
# ============================================================================

class CandidateProfile(BaseModel):
    """A performer profile, read-only to the search pipeline"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    full_name: str = ""
    gender: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None

    height_feet: Optional[int] = None
    height_inches: Optional[int] = None
    weight_lbs: Optional[int] = None
    hair_color: Optional[str] = None
    ethnicity: Optional[str] = None

    union_status: Optional[str] = None
    availability_status: Optional[str] = None
    travel_radius: Optional[str] = None

    primary_location_structured: Optional[str] = None
    secondary_location_structured: Optional[str] = None
    location: Optional[str] = Field(default=None, description="Free-text location")
    secondary_location: Optional[str] = None

    reel_url: Optional[str] = None
    website: Optional[str] = None
    resume_url: Optional[str] = None
    resume_text: Optional[str] = None
    is_public: bool = True
    subscription_tier: Optional[str] = None

    photos: List[ProfilePhoto] = Field(default_factory=list, alias="profile_photos")
    skills: List[ProfileSkill] = Field(default_factory=list, alias="profile_skills")
    certifications: List[ProfileCertification] = Field(default_factory=list, alias="profile_certifications")
    project_submissions: List[ProjectSubmission] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @field_validator("photos", "skills", "certifications", "project_submissions", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def total_height_inches(self) -> Optional[int]:
        """Height in inches, or None when no height is recorded"""
        if self.height_feet is None:
            return None
        return self.height_feet * 12 + (self.height_inches or 0)

    @property
    def skill_names(self) -> List[str]:
        return [s.skill_id for s in self.skills]

    @property
    def display_height(self) -> str:
        if self.height_feet is None:
            return "Height not specified"
        return f"{self.height_feet}'{self.height_inches or 0}\""

    @property
    def display_weight(self) -> str:
        return f"{self.weight_lbs} lbs" if self.weight_lbs else "Weight not specified"

    @property
    def scope_ids(self) -> List[str]:
        return [s.project_id for s in self.project_submissions]
