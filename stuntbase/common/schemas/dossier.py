"""
Dossier Templates

Renders a CandidateProfile to the plain-text block the composer hands to the
model. The ID line is what the trailer must reference, so it always comes first.
"""

from typing import TYPE_CHECKING, List, Optional

from ..vocabulary import location_label

if TYPE_CHECKING:
    from ...search.enrichment import ResumeInsight
    from .candidate_profile import CandidateProfile


DOSSIER_SEPARATOR = "---"


def _format_skills(profile: "CandidateProfile") -> str:
    """Skills with proficiency and years when known"""
    if not profile.skills:
        return "No skills listed"
    parts = []
    for skill in profile.skills:
        text = skill.skill_id
        if skill.proficiency_level:
            text += f" ({skill.proficiency_level})"
        if skill.years_experience:
            text += f" - {skill.years_experience:g} years"
        parts.append(text)
    return ", ".join(parts)


def _format_certifications(profile: "CandidateProfile") -> str:
    if not profile.certifications:
        return "No certifications listed"
    return ", ".join(
        f"{c.certification_id} ({c.date_obtained})" if c.date_obtained else c.certification_id
        for c in profile.certifications
    )


def _format_insight(insight: "ResumeInsight") -> List[str]:
    """Resume highlights, or the reason there are none"""
    if not insight.analyzed:
        return [f"Resume Analysis: {insight.reason}"] if insight.reason else []

    lines = [f"RESUME HIGHLIGHTS ({insight.tier.upper()} TIER):"]
    if insight.relevant_experience:
        lines.append(f"  Relevant Experience: {', '.join(insight.relevant_experience)}")
    if insight.notable_credits:
        lines.append(f"  Notable Credits: {', '.join(insight.notable_credits)}")
    if insight.years_experience > 0:
        lines.append(f"  Total Experience: {insight.years_experience} years")
    if insight.skills_from_resume:
        lines.append(f"  Skills from Resume: {', '.join(insight.skills_from_resume)}")
    lines.append(f"  Relevance Score: {insight.relevance_score * 100:.0f}%")
    return lines


def render_dossier(profile: "CandidateProfile", insight: Optional["ResumeInsight"] = None) -> str:
    """Render one candidate for the composition prompt"""
    if profile.primary_location_structured:
        primary = location_label(profile.primary_location_structured)
    else:
        primary = profile.location or "Location not specified"

    if profile.secondary_location_structured:
        secondary = location_label(profile.secondary_location_structured)
    else:
        secondary = profile.secondary_location

    lines = [
        f"ID: {profile.id}",
        f"Name: {profile.full_name}",
        f"Gender: {profile.gender or 'Not specified'}",
        f"Primary Location: {primary}",
    ]
    if secondary:
        lines.append(f"Secondary Location: {secondary}")

    lines.extend([
        f"Height: {profile.display_height}",
        f"Weight: {profile.display_weight}",
        f"Ethnicity: {profile.ethnicity or 'Not specified'}",
        f"Hair: {profile.hair_color or 'Not specified'}",
        f"Union Status: {profile.union_status or 'Not specified'}",
        f"Availability: {profile.availability_status or 'Not specified'}",
        f"Travel: {profile.travel_radius or 'local'}",
        f"Skills: {_format_skills(profile)}",
        f"Certifications: {_format_certifications(profile)}",
    ])

    if profile.bio:
        lines.append(f"Bio: {profile.bio}")
    if profile.reel_url:
        lines.append("Demo Reel: Available")
    if profile.resume_url:
        lines.append("Resume: Available")

    if insight is not None:
        lines.extend(_format_insight(insight))

    return "\n".join(lines) + "\n" + DOSSIER_SEPARATOR


def render_dossiers(profiles: List["CandidateProfile"], insights: Optional[dict] = None) -> str:
    """Render every candidate, or a placeholder when there are none"""
    if not profiles:
        return "No performers found matching the specified criteria."
    insights = insights or {}
    return "\n\n".join(render_dossier(p, insights.get(p.id)) for p in profiles)
