"""
Candidate Retriever

Translates a ParsedQuery into a tolerant store query, post-filters skills
against the synonym table, and ranks by profile completeness.
Favors recall: physical bands are widened, location can be OR'd with free
text, and any store failure degrades to an unfiltered visible pool.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..common.candidate_store import CandidateStore, Condition, StoreQuery
from ..common.llm_utils import format_height
from ..common.schemas import CandidateProfile
from ..common.vocabulary import (
    HEIGHT_DOMAIN,
    RELATED_SKILLS,
    WEIGHT_DOMAIN,
    TravelRadius,
    UnionStatus,
    find_location_by_value,
    tiers_at_or_above,
)
from .interpreter import ParsedQuery

logger = logging.getLogger("stuntbase.search.retriever")

FALLBACK_FILTER = "fallback - no filters applied"

_RELATED_BY_CATEGORY: Dict[str, List[str]] = {cat.value: terms for cat, terms in RELATED_SKILLS.items()}

# Weighted presence of optional profile fields
COMPLETENESS_WEIGHTS: Dict[str, int] = {
    "full_name": 1,
    "bio": 2,
    "email": 1,
    "phone": 1,
    "height": 1,
    "weight_lbs": 1,
    "hair_color": 1,
    "ethnicity": 1,
    "union_status": 1,
    "availability_status": 1,
    "location": 2,
    "skills": 3,
    "certifications": 2,
    "photos": 3,
    "reel_url": 2,
    "website": 1,
    "resume_url": 2,
}


@dataclass
class QueryResult:
    """Ranked candidates from one retrieval call"""
    profiles: List[CandidateProfile] = field(default_factory=list)
    method: str = "structured"  # "structured", "fallback", "vector"
    total_matched: int = 0
    filters_applied: List[str] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.method == "fallback"

    @property
    def profile_ids(self) -> List[str]:
        return [p.id for p in self.profiles]


# ============================================================================
# Helpers
# ============================================================================

def widen_band(
    low: Optional[int],
    high: Optional[int],
    tolerance: int,
    domain: Tuple[int, int],
) -> Tuple[int, int]:
    """
    Complete a one-sided band with the domain bound, widen by ``tolerance``
    on each side, and clamp to the domain.
    """
    floor, ceiling = domain
    low = floor if low is None else low
    high = ceiling if high is None else high
    return max(floor, low - tolerance), min(ceiling, high + tolerance)


def skill_matches(profile_skills: Iterable[str], requested: Sequence[str]) -> bool:
    """
    True if any declared skill overlaps any requested category, directly or
    through its related skill names. Overlap is substring in either direction.
    """
    names = [s.strip().lower() for s in profile_skills if s and s.strip()]
    if not names:
        return False
    for category in requested:
        terms = [category.lower()] + [t.lower() for t in _RELATED_BY_CATEGORY.get(category, [])]
        for term in terms:
            if any(term in name or name in term for name in names):
                return True
    return False


def completeness_score(profile: CandidateProfile) -> int:
    """Weighted count of populated optional fields"""
    present = {
        "full_name": bool(profile.full_name),
        "bio": bool(profile.bio),
        "email": bool(profile.email),
        "phone": bool(profile.phone),
        "height": profile.height_feet is not None,
        "weight_lbs": bool(profile.weight_lbs),
        "hair_color": bool(profile.hair_color),
        "ethnicity": bool(profile.ethnicity),
        "union_status": bool(profile.union_status),
        "availability_status": bool(profile.availability_status),
        "location": bool(profile.primary_location_structured or profile.location),
        "skills": bool(profile.skills),
        "certifications": bool(profile.certifications),
        "photos": bool(profile.photos),
        "reel_url": bool(profile.reel_url),
        "website": bool(profile.website),
        "resume_url": bool(profile.resume_url),
    }
    return sum(weight for key, weight in COMPLETENESS_WEIGHTS.items() if present[key])


# ============================================================================
# Retriever
# ============================================================================

class CandidateRetriever:
    """
    Retrieves and ranks candidates for a ParsedQuery.

    Visibility (and scope, when given) always apply. Each populated field of
    the query adds one predicate; skills are matched in memory afterwards.
    """

    def __init__(
        self,
        store: CandidateStore,
        result_limit: int = 50,
        broad_result_limit: int = 100,
        fallback_limit: int = 20,
        height_tolerance: int = 3,
        weight_tolerance: int = 10,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            store: Read-only candidate store
            result_limit: Cap for a normal request
            broad_result_limit: Cap when the query is flagged broad
            fallback_limit: Cap for the unfiltered fallback read
            height_tolerance: Inches added on each side of the parsed band
            weight_tolerance: Pounds added on each side of the parsed band
            rng: Random source for tie-breaks (seed it for deterministic order)
        """
        self._store = store
        self.result_limit = result_limit
        self.broad_result_limit = broad_result_limit
        self.fallback_limit = fallback_limit
        self.height_tolerance = height_tolerance
        self.weight_tolerance = weight_tolerance
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, store: CandidateStore, config) -> "CandidateRetriever":
        """Build from a SearchConfig"""
        rng = random.Random(config.random_seed) if config.random_seed is not None else None
        return cls(
            store,
            result_limit=config.result_limit,
            broad_result_limit=config.broad_result_limit,
            fallback_limit=config.fallback_limit,
            height_tolerance=config.height_tolerance,
            weight_tolerance=config.weight_tolerance,
            rng=rng,
        )

    # ------------------------------------------------------------------
    # Bands
    # ------------------------------------------------------------------

    def height_band(self, parsed: ParsedQuery) -> Optional[Tuple[int, int]]:
        """Widened retrieval band in inches, or None when height is unconstrained"""
        if parsed.height_min is None and parsed.height_max is None:
            return None
        return widen_band(parsed.height_min, parsed.height_max, self.height_tolerance, HEIGHT_DOMAIN)

    def weight_band(self, parsed: ParsedQuery) -> Optional[Tuple[int, int]]:
        """Widened retrieval band in pounds, or None when weight is unconstrained"""
        if parsed.weight_min is None and parsed.weight_max is None:
            return None
        return widen_band(parsed.weight_min, parsed.weight_max, self.weight_tolerance, WEIGHT_DOMAIN)

    def result_cap(self, parsed: ParsedQuery) -> int:
        """Maximum number of ranked candidates returned for this query"""
        return self.broad_result_limit if parsed.broad_search else self.result_limit

    def _filters_in_memory(self, parsed: ParsedQuery) -> bool:
        return self.height_band(parsed) is not None or bool(parsed.skills)

    # ------------------------------------------------------------------
    # Query construction
    # ------------------------------------------------------------------

    def build_store_query(
        self,
        parsed: ParsedQuery,
        scope_id: Optional[str] = None,
    ) -> Tuple[StoreQuery, List[str]]:
        """
        Translate a ParsedQuery into a StoreQuery.

        Returns:
            (store query, human-readable filtersApplied list)
        """
        conditions = [Condition("is_public", "eq", True)]
        any_of: List[List[Condition]] = []
        filters: List[str] = []

        if scope_id:
            filters.append("project_database")

        if parsed.gender:
            conditions.append(Condition("gender", "eq", parsed.gender))
            filters.append(f"gender: {parsed.gender}")

        if parsed.location:
            group = [
                Condition("primary_location_structured", "eq", parsed.location),
                Condition("secondary_location_structured", "eq", parsed.location),
            ]
            if parsed.broad_search:
                loc = find_location_by_value(parsed.location)
                city = loc.city if loc else parsed.location.split("-")[0]
                group.append(Condition("location", "ilike", f"%{city}%"))
                filters.append(f"location: {parsed.location} (broad search)")
            else:
                filters.append(f"location: {parsed.location}")
            any_of.append(group)

        if parsed.ethnicities:
            conditions.append(Condition("ethnicity", "in", list(parsed.ethnicities)))
            filters.append(f"ethnicities: {', '.join(parsed.ethnicities)}")

        height = self.height_band(parsed)
        if height:
            low, high = height
            # Coarse bound on feet; the exact inch band is applied in memory
            conditions.append(Condition("height_feet", "gte", low // 12))
            conditions.append(Condition("height_feet", "lte", high // 12))
            parsed_low = parsed.height_min if parsed.height_min is not None else HEIGHT_DOMAIN[0]
            parsed_high = parsed.height_max if parsed.height_max is not None else HEIGHT_DOMAIN[1]
            filters.append(
                f"height: {format_height(parsed_low)} - {format_height(parsed_high)} "
                f"(±{self.height_tolerance}\" flex)"
            )

        weight = self.weight_band(parsed)
        if weight:
            low, high = weight
            conditions.append(Condition("weight_lbs", "gte", low))
            conditions.append(Condition("weight_lbs", "lte", high))
            parsed_low = parsed.weight_min if parsed.weight_min is not None else WEIGHT_DOMAIN[0]
            parsed_high = parsed.weight_max if parsed.weight_max is not None else WEIGHT_DOMAIN[1]
            filters.append(f"weight: {parsed_low}-{parsed_high} lbs (±{self.weight_tolerance} flex)")

        if parsed.availability:
            conditions.append(Condition("availability_status", "eq", parsed.availability))
            filters.append(f"availability: {parsed.availability}")

        if parsed.union_status == UnionStatus.SAG_AFTRA.value:
            conditions.append(Condition("union_status", "ilike", "%SAG%"))
            filters.append(f"union: {parsed.union_status}")
        elif parsed.union_status == UnionStatus.NON_UNION.value:
            any_of.append([
                Condition("union_status", "ilike", "%non-union%"),
                Condition("union_status", "is_null", True),
            ])
            filters.append(f"union: {parsed.union_status}")
        elif parsed.union_status == UnionStatus.UNKNOWN.value:
            filters.append("union: Unknown (not filtered)")

        if parsed.travel_radius and parsed.travel_radius != TravelRadius.LOCAL.value:
            conditions.append(Condition("travel_radius", "in", tiers_at_or_above(parsed.travel_radius)))
            filters.append(f"travel: {parsed.travel_radius}+")

        # Rows are filtered again in memory for height and skills, so the cap
        # can only go to the store when nothing is dropped after the read
        limit = None if self._filters_in_memory(parsed) else self.result_cap(parsed)
        query = StoreQuery(conditions=conditions, any_of=any_of, scope_id=scope_id or None, limit=limit)
        return query, filters

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def retrieve(self, parsed: ParsedQuery, scope_id: Optional[str] = None) -> QueryResult:
        """
        Retrieve ranked candidates.

        Args:
            parsed: Validated query from the interpreter
            scope_id: Optional project roster to search within

        Returns:
            QueryResult; method "fallback" when the filtered read failed
        """
        try:
            query, filters = self.build_store_query(parsed, scope_id)
            rows = await self._store.fetch(query)
            logger.debug("Structured query returned %d rows", len(rows))

            profiles = profiles_from_rows(rows)

            height = self.height_band(parsed)
            if height:
                low, high = height
                profiles = [
                    p for p in profiles
                    if p.total_height_inches is not None and low <= p.total_height_inches <= high
                ]

            if parsed.skills:
                profiles = [p for p in profiles if skill_matches(p.skill_names, parsed.skills)]
                filters.append(f"skills: {', '.join(parsed.skills)} (with related skills)")

            ranked = self.rank(profiles)
            logger.info("Retrieved %d candidates (filters: %s)", len(ranked), "; ".join(filters) or "none")
            return QueryResult(
                profiles=ranked[:self.result_cap(parsed)],
                method="structured",
                total_matched=len(ranked),
                filters_applied=filters,
            )
        except Exception as e:
            logger.warning("Structured query failed, falling back: %s", e)
            return await self._fallback()

    async def _fallback(self) -> QueryResult:
        """Unfiltered, capped read over the visible pool"""
        query = StoreQuery(conditions=[Condition("is_public", "eq", True)], limit=self.fallback_limit)
        try:
            rows = await self._store.fetch(query)
            profiles = self.rank(profiles_from_rows(rows))[:self.fallback_limit]
        except Exception as e:
            logger.error("Fallback query failed: %s", e)
            profiles = []

        return QueryResult(
            profiles=profiles,
            method="fallback",
            total_matched=len(profiles),
            filters_applied=[FALLBACK_FILTER],
        )

    def rank(self, profiles: List[CandidateProfile]) -> List[CandidateProfile]:
        """Completeness first; equal scores in random order"""
        shuffled = list(profiles)
        self._rng.shuffle(shuffled)
        return sorted(shuffled, key=completeness_score, reverse=True)


def profiles_from_rows(rows: Iterable[Mapping[str, Any]]) -> List[CandidateProfile]:
    """Validate store rows into profiles, skipping malformed ones"""
    profiles = []
    for row in rows:
        try:
            profiles.append(CandidateProfile.model_validate(row))
        except ValidationError as e:
            row_id = row.get("id") if isinstance(row, Mapping) else None
            logger.warning("Skipping malformed profile row %s: %s", row_id, e)
    return profiles
