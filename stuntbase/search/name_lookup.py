"""
Name Lookup

Fast path for requests about one specific performer ("tell me about Dana
Reyes", "Dana Reyes's resume", or just "Dana Reyes"). Such requests skip
interpretation and composition: the names are searched directly and the
answer is templated.

Detection is deliberately narrow. A name is a run of capitalized words that
are not vocabulary terms, so "Atlanta fighters" or "Muay Thai" never count.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..common.candidate_store import CandidateStore, Condition, StoreQuery
from ..common.schemas import CandidateProfile
from ..common.vocabulary import (
    ALL_LOCATIONS,
    AVAILABILITY_ALIASES,
    BROAD_SEARCH_TERMS,
    ETHNICITY_ALIASES,
    ETHNICITY_GROUPS,
    GENDER_ALIASES,
    SKILL_ALIASES,
    TRAVEL_ALIASES,
    UNION_ALIASES,
    location_label,
)
from .composer import RecommendationResult
from .retriever import profiles_from_rows

logger = logging.getLogger("stuntbase.search.name_lookup")

NAME_LOOKUP_METHOD = "name_lookup"

# Query types
CONTACT_INFO = "contact_info"
GENERAL_INFO = "general_info"
PROFILE_LOOKUP = "profile_lookup"

_MIN_CONFIDENCE = 0.6
_MAX_NAME_WORDS = 4
_MAX_LISTED = 3
_MAX_IDS = 5

_COMMON_WORDS = {
    "a", "an", "the", "and", "or", "but", "with", "without", "in", "at", "of", "to", "for",
    "from", "near", "on", "by", "is", "are", "was", "be", "me", "my", "our", "your", "their",
    "i", "we", "you", "they", "he", "she", "it", "this", "that", "these", "those", "any",
    "some", "can", "could", "would", "please", "hi", "hello", "hey", "thanks", "thank",
    "what", "who", "whom", "how", "where", "when", "why", "which", "does", "do", "have",
    "has", "know", "like", "about", "tell", "show", "find", "get", "give", "look", "up",
    "search", "need", "want", "looking", "list", "phone", "number", "email", "contact",
    "info", "information", "details", "profile", "profiles", "resume", "cv", "experience",
    "work", "history", "background", "reel", "database", "system",
    "performer", "performers", "people", "person", "talent", "actor", "actors", "actress",
    "stunt", "stunts", "double", "doubles", "coordinator", "coordinators", "team",
    "male", "female", "man", "woman", "men", "women", "guy", "guys", "girl", "girls",
    "tall", "short", "young", "old", "experienced", "professional", "local", "new",
}


def _vocabulary_words() -> set:
    """Every word of every alias, location label and broad-search term"""
    phrases: List[str] = list(BROAD_SEARCH_TERMS) + list(ETHNICITY_GROUPS)
    for aliases in (GENDER_ALIASES, ETHNICITY_ALIASES, SKILL_ALIASES,
                    AVAILABILITY_ALIASES, UNION_ALIASES, TRAVEL_ALIASES):
        for words in aliases.values():
            phrases.extend(words)
    for loc in ALL_LOCATIONS:
        phrases.append(loc.label)
        phrases.extend(loc.aliases)
    return {word for phrase in phrases for word in re.findall(r"[a-z]+", phrase.lower())}


NON_NAME_WORDS = frozenset(_COMMON_WORDS | _vocabulary_words())

_NAME_WORD = re.compile(r"^[A-Z](?:[a-z]+|['-]?[A-Z][a-z]+)+$")
_POSSESSIVE = re.compile(r"(?:['’]s|['’])$")

_NAME = r"(?P<name>[A-Za-z][A-Za-z'’\-]*(?:\s+[A-Za-z][A-Za-z'’\-]*){0,4})"
_NAME_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    r"what\s+is\s+" + _NAME + r"\s+(?:phone|email|contact|number|info)",
    r"tell\s+me\s+about\s+" + _NAME,
    r"show\s+me\s+" + _NAME + r"\s+(?:profile|info|details|resume|cv|experience)",
    r"find\s+" + _NAME + r"\s+(?:profile|contact|info)",
    r"who\s+is\s+" + _NAME,
    r"get\s+" + _NAME + r"\s+(?:phone|email|contact|details)",
    r"contact\s+(?:info\s+|details\s+)?for\s+" + _NAME,
    r"what\s+is\s+on\s+" + _NAME + r"\s+(?:resume|cv)",
    _NAME + r"\s+(?:resume|cv)\b",
    r"do\s+you\s+have\s+" + _NAME + r"\s+in\s+(?:your\s+)?(?:database|system)",
    r"is\s+" + _NAME + r"\s+in\s+(?:your\s+)?(?:database|system)",
    r"look\s+up\s+" + _NAME,
    r"search\s+for\s+" + _NAME,
    _NAME + r"\s+profile\b",
)]


@dataclass
class NameQuery:
    """Outcome of name detection for one message"""
    names: List[str] = field(default_factory=list)
    query_type: Optional[str] = None
    confidence: float = 0.0

    @property
    def is_name_query(self) -> bool:
        return bool(self.names) and self.confidence > _MIN_CONFIDENCE


# ============================================================================
# Detection
# ============================================================================

def _clean(token: str) -> str:
    token = _POSSESSIVE.sub("", token.strip(".,!?;:\"()"))
    return token.replace("’", "'")


def _is_name_word(token: str) -> bool:
    return bool(_NAME_WORD.match(token)) and token.lower() not in NON_NAME_WORDS


def name_runs(text: str) -> List[str]:
    """Maximal runs of capitalized, non-vocabulary words, in order"""
    runs: List[str] = []
    current: List[str] = []
    for raw in text.split():
        token = _clean(raw)
        if _is_name_word(token):
            current.append(token)
            # A possessive or trailing punctuation ends the name
            if token != raw:
                runs.append(" ".join(current))
                current = []
        elif current:
            runs.append(" ".join(current))
            current = []
    if current:
        runs.append(" ".join(current))
    return [run for run in runs if len(run.split()) <= _MAX_NAME_WORDS]


def _query_type(lowered: str):
    if any(word in lowered for word in ("phone", "contact", "email")):
        return CONTACT_INFO, 0.9
    if any(word in lowered for word in ("resume", "cv", "experience", "work", "history")):
        return GENERAL_INFO, 0.85
    if any(word in lowered for word in ("profile", "details", "info")):
        return GENERAL_INFO, 0.8
    return PROFILE_LOOKUP, 0.7


def detect_name_query(message: str) -> NameQuery:
    """
    Detect a request about specific, named performers.

    Names come from lookup phrasings ("tell me about X", "X's resume"), from
    a message that is nothing but a name, or, failing both, from any run of
    two or more capitalized words.
    """
    text = (message or "").strip()
    if not text:
        return NameQuery()

    names: List[str] = []
    for pattern in _NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        runs = name_runs(match.group("name"))
        if runs and 2 <= len(runs[0]) <= 50 and runs[0] not in names:
            names.append(runs[0])

    tokens = [_clean(t) for t in text.split()]
    if 2 <= len(tokens) <= _MAX_NAME_WORDS and all(_is_name_word(t) for t in tokens):
        standalone = " ".join(tokens)
        if standalone not in names:
            names.append(standalone)

    if not names:
        names = [run for run in name_runs(text) if len(run.split()) >= 2]

    if not names:
        return NameQuery()

    query_type, confidence = _query_type(text.lower())
    result = NameQuery(names=names, query_type=query_type, confidence=confidence)
    logger.debug("Name detection: %s (%s, %.2f)", names, query_type, confidence)
    return result


# ============================================================================
# Lookup
# ============================================================================

def _match_rank(profile: CandidateProfile, names: Sequence[str]) -> int:
    """0 for an exact full-name match, 1 for containment, 2 otherwise"""
    full_name = (profile.full_name or "").lower()
    lowered = [n.lower() for n in names]
    if full_name in lowered:
        return 0
    if any(n in full_name for n in lowered):
        return 1
    return 2


class NameLookup:
    """Direct full-name search over the visible pool"""

    def __init__(self, store: CandidateStore, limit: int = 10):
        """
        Args:
            store: Read-only candidate store
            limit: Maximum number of rows read for one lookup
        """
        self._store = store
        self.limit = limit

    def build_store_query(self, names: Sequence[str], scope_id: Optional[str] = None) -> StoreQuery:
        """Exact, contained and per-part full-name matches, OR'd together"""
        exact = [Condition("full_name", "ilike", name) for name in names]
        partial = []
        for name in names:
            partial.append(Condition("full_name", "ilike", f"%{name}%"))
            parts = name.split()
            if len(parts) > 1:
                # Short parts match too much
                partial.extend(
                    Condition("full_name", "ilike", f"%{part}%") for part in parts if len(part) > 2
                )
        return StoreQuery(
            conditions=[Condition("is_public", "eq", True)],
            any_of=[exact + partial],
            scope_id=scope_id or None,
            limit=self.limit,
        )

    async def search(self, names: Sequence[str], scope_id: Optional[str] = None) -> List[CandidateProfile]:
        """
        Profiles matching any of ``names``, closest matches first.

        Raises:
            RetrievalFailure: if the store cannot answer
        """
        if not names:
            return []
        rows = await self._store.fetch(self.build_store_query(names, scope_id))
        profiles = profiles_from_rows(rows)
        logger.info("Name lookup for %s found %d profile(s)", ", ".join(names), len(profiles))
        return sorted(profiles, key=lambda p: _match_rank(p, names))


# ============================================================================
# Response
# ============================================================================

def _best_match(profiles: Sequence[CandidateProfile], name: str) -> Optional[CandidateProfile]:
    wanted = name.lower()
    wanted_parts = wanted.split()
    for profile in profiles:
        full_name = (profile.full_name or "").lower()
        if wanted in full_name:
            return profile
        parts = full_name.split()
        if len(wanted_parts) >= 2 and len(parts) >= 2 and all(
            any(w in p or p in w for p in parts) for w in wanted_parts
        ):
            return profile
    return None


def _introduce(profile: CandidateProfile) -> str:
    location = location_label(profile.primary_location_structured) or profile.location or "an unlisted location"
    skills = ", ".join(profile.skill_names[:3])
    specialty = f" and specialize in {skills}" if skills else ""
    return (
        f"Here's {profile.full_name}! They're based in {location}{specialty}. "
        "Their full profile has photos, credits and contact details."
    )


def compose_name_response(
    message: str,
    name_query: NameQuery,
    profiles: Sequence[CandidateProfile],
) -> RecommendationResult:
    """Templated answer for a name lookup, in the public response shape"""
    names = name_query.names
    stats = dict(
        method=NAME_LOOKUP_METHOD,
        total_found=len(profiles),
        filters_applied=[f"name: {', '.join(names)}"],
        confidence=name_query.confidence,
    )

    if not profiles:
        quoted = " or ".join(f'"{n}"' for n in names)
        return RecommendationResult(
            response_text=(
                f"I searched the performer database but couldn't find {quoted}. "
                "Would you like me to look for performers with similar names or by skills and location instead?"
            ),
            **stats,
        )

    if len(profiles) == 1:
        profile = profiles[0]
        if name_query.query_type == CONTACT_INFO:
            text = (
                f"I found {profile.full_name}! Their professional contact details and representation "
                "are on their full profile."
            )
        else:
            text = _introduce(profile)
        return RecommendationResult(response_text=text, profile_ids=[profile.id], **stats)

    lowered = message.lower()
    best = _best_match(profiles, names[0])
    specific = (
        any(word in lowered for word in ("resume", "profile", "info"))
        or len(names[0].split()) >= 2
        or len(message.split()) <= 4
    )
    if best is not None and specific:
        return RecommendationResult(response_text=_introduce(best), profile_ids=[best.id], **stats)

    listed = ", ".join(p.full_name or p.id for p in profiles[:_MAX_LISTED])
    remaining = len(profiles) - _MAX_LISTED
    others = f" and {remaining} others" if remaining > 0 else ""
    return RecommendationResult(
        response_text=f"I found several performers: {listed}{others}. Which one did you mean?",
        profile_ids=[p.id for p in profiles[:_MAX_IDS]],
        **stats,
    )
