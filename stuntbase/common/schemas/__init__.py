"""
Candidate Schemas

Read-only profile models and the dossier text rendered from them.
"""

from .candidate_profile import (
    CandidateProfile,
    ProfileSkill,
    ProfileCertification,
    ProfilePhoto,
    ProjectSubmission,
)
from .dossier import render_dossier, render_dossiers, DOSSIER_SEPARATOR

__all__ = [
    "CandidateProfile",
    "ProfileSkill",
    "ProfileCertification",
    "ProfilePhoto",
    "ProjectSubmission",
    "render_dossier",
    "render_dossiers",
    "DOSSIER_SEPARATOR",
]
