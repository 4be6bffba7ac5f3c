"""
Recommendation Composer

LLM-based shortlist from retrieved candidates.
The model sees a bounded dossier and must end its answer with a
[PROFILES: ...] trailer naming the candidates it recommends.

Key principle: never return an identifier that was not in the dossier, and
never return an empty identifier list while candidates exist.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..common.schemas import render_dossiers
from .enrichment import ResumeInsight
from .interpreter import ParsedQuery
from .retriever import QueryResult
from .trailer import parse_trailer, strip_trailer

logger = logging.getLogger("stuntbase.search.composer")

Turn = Mapping[str, Any]

NO_MATCHES_TEXT = "No exact matches found. Try expanding your search criteria for more options."


@dataclass
class RecommendationResult:
    """Prose recommendation plus the ids it refers to"""
    response_text: str
    profile_ids: List[str] = field(default_factory=list)
    method: str = "structured"
    total_found: int = 0
    filters_applied: List[str] = field(default_factory=list)
    confidence: float = 0.0
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Public response contract"""
        return {
            "responseText": self.response_text,
            "profileIds": list(self.profile_ids),
            "searchStats": {
                "method": self.method,
                "totalFound": self.total_found,
                "filtersApplied": list(self.filters_applied),
                "confidence": self.confidence,
            },
        }


COMPOSE_SYSTEM = (
    "You are a professional casting assistant who finds stunt performers for film and TV "
    "productions. You are knowledgeable, warm and concise."
)

COMPOSE_PROMPT = """{request}

SEARCH CONTEXT:
{search_context}

SEARCH RESULTS: {total} performers found

AVAILABLE PERFORMERS:
{dossier}

Exact matches are rare. Recommend CLOSE MATCHES that share as many attributes as possible:
- Height within 2 inches is excellent, 3-4 inches is still very good
- Nearby cities and regions are good options
- Related skills and strong fundamentals count (martial arts experience for sword work)

RULES:
- ONLY recommend performers from the list above, using their EXACT full names. Never invent anyone.
- Present the top {max_recommendations} performers at most, one short paragraph each: location, physical stats, key skills, resume highlights when available, and why they fit.
- When several performers fit equally well, vary which ones you highlight.
- Use plain text, no markdown symbols.
- If nobody fits, say so honestly and suggest broadening the criteria.
- MANDATORY: end your response with the IDs of the performers you recommended in this exact format:
[PROFILES: id1,id2,id3]"""


def build_search_context(parsed: ParsedQuery, result: QueryResult) -> str:
    """Method, counts, filters and interpreted criteria"""
    lines = [
        f"Search Method: {result.method}",
        f"Performers Found: {result.total_matched}",
        f"Parse Confidence: {parsed.confidence * 100:.0f}%",
    ]
    if result.filters_applied:
        lines.append(f"Filters Applied: {', '.join(result.filters_applied)}")
    criteria = parsed.describe()
    if criteria:
        lines.append(f"Interpreted Criteria: {' | '.join(criteria)}")
    return "\n".join(lines)


class RecommendationComposer:
    """
    Composes the recommendation for one turn.

    Falls back to the first ranked candidates and a templated sentence when
    the LLM is unavailable, fails, or omits the trailer.
    """

    def __init__(
        self,
        llm_client=None,
        dossier_limit: int = 25,
        fallback_profile_count: int = 3,
        history_window: int = 3,
        max_recommendations: int = 4,
        max_tokens: int = 800,
        timeout: float = 30.0,
    ):
        """
        Args:
            llm_client: LLMClient (or anything with is_available/generate)
            dossier_limit: Ranked candidates shown to the model
            fallback_profile_count: Ids returned when the model gives none
            history_window: Recent turns included as context
            max_recommendations: Candidates the model may highlight
            max_tokens: Generation budget
            timeout: Per-call timeout passed to the provider
        """
        self._llm = llm_client
        self.dossier_limit = dossier_limit
        self.fallback_profile_count = fallback_profile_count
        self.history_window = history_window
        self.max_recommendations = max_recommendations
        self._max_tokens = max_tokens
        self._timeout = timeout

    @property
    def has_llm(self) -> bool:
        return self._llm is not None and self._llm.is_available

    def build_prompt(
        self,
        original_message: str,
        parsed: ParsedQuery,
        result: QueryResult,
        history: Sequence[Turn] = (),
        enrichment: Sequence[ResumeInsight] = (),
    ) -> str:
        recent = list(history)[-self.history_window:] if self.history_window else []
        if recent:
            turns = "\n".join(f"{t.get('role', 'user')}: {t.get('content', '')}" for t in recent)
            request = f'CONVERSATION CONTEXT:\n{turns}\n\nCURRENT REQUEST: "{original_message}"'
        else:
            request = f'FIRST REQUEST: "{original_message}"'

        insights = {i.profile_id: i for i in enrichment}
        dossier = render_dossiers(result.profiles[: self.dossier_limit], insights)

        return COMPOSE_PROMPT.format(
            request=request,
            search_context=build_search_context(parsed, result),
            total=result.total_matched,
            dossier=dossier,
            max_recommendations=self.max_recommendations,
        )

    def compose(
        self,
        original_message: str,
        parsed: ParsedQuery,
        result: QueryResult,
        history: Optional[Sequence[Turn]] = None,
        enrichment: Optional[Sequence[ResumeInsight]] = None,
    ) -> RecommendationResult:
        """
        Compose a recommendation. Never raises.

        Args:
            original_message: The user's request
            parsed: Interpreted query (for confidence and criteria)
            result: Ranked candidates
            history: Prior turns as {"role", "content"} mappings
            enrichment: Optional resume insights keyed by profile id

        Returns:
            RecommendationResult with the trailer stripped from the prose
        """
        if not self.has_llm:
            logger.info("No LLM available, using fallback recommendation")
            return self.fallback(parsed, result)

        try:
            prompt = self.build_prompt(original_message, parsed, result, history or (), enrichment or ())
            raw = self._llm.generate(
                prompt,
                system=COMPOSE_SYSTEM,
                max_tokens=self._max_tokens,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning("Recommendation generation failed: %s", e)
            return self.fallback(parsed, result)

        dossier_ids = [p.id for p in result.profiles[: self.dossier_limit]]
        requested = parse_trailer(raw)
        profile_ids = [pid for pid in requested if pid in dossier_ids]
        if len(profile_ids) < len(requested):
            logger.warning(
                "Dropped %d trailer id(s) not in the dossier", len(requested) - len(profile_ids)
            )

        text = strip_trailer(raw)
        used_fallback = False
        if not profile_ids and dossier_ids:
            logger.warning("Response had no usable profile trailer, using first ranked candidates")
            profile_ids = dossier_ids[: self.fallback_profile_count]
            used_fallback = True
        if not text:
            text = self._fallback_text(result)
            used_fallback = True

        return self._result(text, profile_ids, parsed, result, used_fallback)

    def fallback(self, parsed: ParsedQuery, result: QueryResult) -> RecommendationResult:
        """Templated sentence plus the first ranked candidates"""
        profile_ids = [p.id for p in result.profiles[: self.fallback_profile_count]]
        return self._result(self._fallback_text(result), profile_ids, parsed, result, True)

    @staticmethod
    def _fallback_text(result: QueryResult) -> str:
        if result.profiles:
            return f"I found {len(result.profiles)} performer(s) that could work for your project!"
        return NO_MATCHES_TEXT

    @staticmethod
    def _result(
        text: str,
        profile_ids: List[str],
        parsed: ParsedQuery,
        result: QueryResult,
        used_fallback: bool,
    ) -> RecommendationResult:
        return RecommendationResult(
            response_text=text,
            profile_ids=profile_ids,
            method=result.method,
            total_found=result.total_matched,
            filters_applied=list(result.filters_applied),
            confidence=parsed.confidence,
            used_fallback=used_fallback,
        )
