"""
Resume Enrichment

Extracts request-relevant highlights from the stored resume text of the top
ranked candidates. Insights are optional context for the composer; a missing
or failed analysis is reported on the insight, never raised.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from ..common.llm_utils import parse_llm_json
from ..common.schemas import CandidateProfile

logger = logging.getLogger("stuntbase.search.enrichment")

MIN_RESUME_CHARS = 50
MAX_RESUME_CHARS = 3000
MAX_ITEMS = 3

RESUME_PROMPT = """Analyze this stunt performer's resume for the search context: "{context}"

RESUME TEXT:
{resume}

INSTRUCTIONS:
- Extract the most relevant work experience (max 3 credits)
- Identify notable productions or well-known directors
- Find specific skills mentioned that relate to the search
- Estimate total years of experience
- Rate relevance to the search (0.0-1.0)

Return ONLY valid JSON:
{{
  "relevant_experience": ["credit 1", "credit 2"],
  "notable_credits": ["big budget film or known director"],
  "years_experience": number,
  "relevance_score": 0.0-1.0,
  "skills_from_resume": ["skill1", "skill2"]
}}"""


@dataclass
class ResumeInsight:
    """Resume highlights for one candidate"""
    profile_id: str
    full_name: str = ""
    tier: str = "free"
    relevant_experience: List[str] = field(default_factory=list)
    notable_credits: List[str] = field(default_factory=list)
    years_experience: int = 0
    relevance_score: float = 0.0
    skills_from_resume: List[str] = field(default_factory=list)
    analyzed: bool = False
    reason: Optional[str] = None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v).strip() for v in value if str(v).strip()][:MAX_ITEMS]


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class ResumeAnalyzer:
    """
    Analyzes the resumes of the top ranked candidates.

    Only candidates with a resume are considered, at most ``max_resumes`` of
    them, in ranking order.
    """

    def __init__(
        self,
        llm_client=None,
        max_resumes: int = 2,
        enabled: bool = True,
        max_tokens: int = 400,
        timeout: float = 10.0,
    ):
        self._llm = llm_client
        self.max_resumes = max_resumes
        self.enabled = enabled
        self._max_tokens = max_tokens
        self._timeout = timeout

    @property
    def is_active(self) -> bool:
        return (
            self.enabled
            and self.max_resumes > 0
            and self._llm is not None
            and self._llm.is_available
        )

    def analyze(self, profiles: Sequence[CandidateProfile], search_context: str) -> List[ResumeInsight]:
        """
        Args:
            profiles: Ranked candidates
            search_context: The request the resumes are judged against

        Returns:
            One insight per analyzed candidate (possibly analyzed=False)
        """
        if not self.is_active:
            logger.debug("Resume analysis disabled or no LLM available")
            return []

        eligible = [p for p in profiles if p.resume_url or p.resume_text][: self.max_resumes]
        if not eligible:
            return []

        insights = [self._analyze_one(profile, search_context) for profile in eligible]
        logger.info(
            "Resume analysis completed for %d/%d candidates",
            sum(1 for i in insights if i.analyzed), len(insights),
        )
        return insights

    def _analyze_one(self, profile: CandidateProfile, search_context: str) -> ResumeInsight:
        insight = ResumeInsight(
            profile_id=profile.id,
            full_name=profile.full_name,
            tier=profile.subscription_tier or "free",
        )

        text = (profile.resume_text or "").strip()
        if len(text) < MIN_RESUME_CHARS:
            insight.reason = "Resume text not available or too short"
            return insight

        try:
            raw = self._llm.generate(
                RESUME_PROMPT.format(context=search_context, resume=text[:MAX_RESUME_CHARS]),
                max_tokens=self._max_tokens,
                timeout=self._timeout,
                json_mode=True,
            )
        except Exception as e:
            logger.warning("Resume analysis failed for %s: %s", profile.id, e)
            insight.reason = f"Analysis failed: {e}"
            return insight

        data = parse_llm_json(raw)
        if not data:
            insight.reason = "Analysis failed: unparsable response"
            return insight

        insight.relevant_experience = _string_list(data.get("relevant_experience"))
        insight.notable_credits = _string_list(data.get("notable_credits"))
        insight.skills_from_resume = _string_list(data.get("skills_from_resume"))
        insight.years_experience = max(0, int(_number(data.get("years_experience"))))
        insight.relevance_score = min(1.0, max(0.0, _number(data.get("relevance_score"))))
        insight.analyzed = True
        return insight
