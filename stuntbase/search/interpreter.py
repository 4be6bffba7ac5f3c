"""
Query Interpreter

Turns a casting request ("I need a 5'8 martial artist in Atlanta") into a
ParsedQuery whose every enumerated field is drawn from the closed vocabularies.

Two paths:
- LLM path: JSON-mode generation against a prompt that lists every legal value,
  followed by an independent validation pass.
- Keyword path: deterministic alias matching over the same vocabularies, used
  when no LLM client is configured.
"""

import json
import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..common.llm_utils import format_height, parse_llm_json
from ..common.vocabulary import (
    ALL_LOCATIONS,
    AVAILABILITY_ALIASES,
    AVAILABILITY_VALUES,
    BROAD_SEARCH_TERMS,
    ETHNICITY_ALIASES,
    ETHNICITY_GROUPS,
    ETHNICITY_VALUES,
    GENDER_ALIASES,
    GENDER_VALUES,
    HEIGHT_DOMAIN,
    LOCATION_VALUES,
    SKILL_ALIASES,
    SKILL_VALUES,
    TRAVEL_ALIASES,
    TRAVEL_LABELS,
    TRAVEL_ORDER,
    TRAVEL_VALUES,
    UNION_ALIASES,
    UNION_VALUES,
    WEIGHT_DOMAIN,
    location_label,
)

logger = logging.getLogger("stuntbase.search.interpreter")

Turn = Mapping[str, Any]

_TRAVEL_LABELS_BY_VALUE = {radius.value: label for radius, label in TRAVEL_LABELS.items()}


# ============================================================================
# ParsedQuery
# ============================================================================

@dataclass(frozen=True)
class ParsedQuery:
    """Sanitized, closed-vocabulary representation of one casting request"""
    gender: Optional[str] = None
    location: Optional[str] = None
    ethnicities: Optional[Tuple[str, ...]] = None
    height_min: Optional[int] = None
    height_max: Optional[int] = None
    weight_min: Optional[int] = None
    weight_max: Optional[int] = None
    skills: Tuple[str, ...] = ()
    union_status: Optional[str] = None
    availability: Optional[str] = None
    travel_radius: Optional[str] = None
    broad_search: bool = False
    confidence: float = 0.0

    @classmethod
    def empty(cls) -> "ParsedQuery":
        """All-null query with zero confidence"""
        return cls()

    @property
    def has_filters(self) -> bool:
        return any([
            self.gender, self.location, self.ethnicities,
            self.height_min is not None, self.height_max is not None,
            self.weight_min is not None, self.weight_max is not None,
            self.skills, self.union_status, self.availability, self.travel_radius,
        ])

    def describe(self) -> List[str]:
        """Human-readable criteria, one line per populated field"""
        lines = []
        if self.gender:
            lines.append(f"Gender: {self.gender}")
        if self.location:
            lines.append(f"Location: {location_label(self.location)}")
        if self.ethnicities:
            lines.append(f"Ethnicity: {', '.join(self.ethnicities)}")
        if self.height_min is not None or self.height_max is not None:
            low = format_height(self.height_min) if self.height_min is not None else "any"
            high = format_height(self.height_max) if self.height_max is not None else "any"
            lines.append(f"Height: {low} - {high}")
        if self.weight_min is not None or self.weight_max is not None:
            low = self.weight_min if self.weight_min is not None else "any"
            high = self.weight_max if self.weight_max is not None else "any"
            lines.append(f"Weight: {low} - {high} lbs")
        if self.skills:
            lines.append(f"Skills: {', '.join(self.skills)}")
        if self.union_status:
            lines.append(f"Union: {self.union_status}")
        if self.availability:
            lines.append(f"Availability: {self.availability}")
        if self.travel_radius:
            lines.append(f"Travel: {_TRAVEL_LABELS_BY_VALUE.get(self.travel_radius, self.travel_radius)}")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["skills"] = list(self.skills)
        data["ethnicities"] = list(self.ethnicities) if self.ethnicities else None
        return data


# ============================================================================
# Validation
# ============================================================================

def _validate_choice(field_name: str, value: Any, allowed: frozenset) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, str) and value in allowed:
        return value
    logger.debug("Invalid %s %r, setting to null", field_name, value)
    return None


def _validate_members(field_name: str, value: Any, allowed: frozenset) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        logger.debug("Invalid %s %r, dropping", field_name, value)
        return ()
    kept = []
    for member in value:
        if isinstance(member, str) and member in allowed:
            if member not in kept:
                kept.append(member)
        else:
            logger.debug("Invalid %s member %r, removing from list", field_name, member)
    return tuple(kept)


def _validate_number(field_name: str, value: Any, domain: Tuple[int, int]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            logger.debug("Invalid %s %r, setting to null", field_name, value)
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        logger.debug("Invalid %s %r, setting to null", field_name, value)
        return None
    number = int(round(value))
    low, high = domain
    if number < low or number > high:
        logger.debug("Out-of-range %s %r, setting to null", field_name, value)
        return None
    return number


def _ordered(low: Optional[int], high: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    if low is not None and high is not None and low > high:
        return high, low
    return low, high


def _validate_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                return 0.0
        else:
            return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(min(1.0, max(0.0, value)))


def validate_parsed_query(raw: Mapping[str, Any]) -> ParsedQuery:
    """
    Build a ParsedQuery from untrusted model output.

    Invalid scalars become None, invalid list members are dropped, numbers
    outside the physical domains are discarded. The input is never mutated.
    """
    if not isinstance(raw, Mapping):
        return ParsedQuery.empty()

    ethnicities = _validate_members("ethnicity", raw.get("ethnicities"), ETHNICITY_VALUES)
    height_min, height_max = _ordered(
        _validate_number("height_min", raw.get("height_min"), HEIGHT_DOMAIN),
        _validate_number("height_max", raw.get("height_max"), HEIGHT_DOMAIN),
    )
    weight_min, weight_max = _ordered(
        _validate_number("weight_min", raw.get("weight_min"), WEIGHT_DOMAIN),
        _validate_number("weight_max", raw.get("weight_max"), WEIGHT_DOMAIN),
    )

    broad_search = raw.get("broad_search", False)
    if not isinstance(broad_search, bool):
        logger.debug("Invalid broad_search %r, setting to false", broad_search)
        broad_search = False

    return ParsedQuery(
        gender=_validate_choice("gender", raw.get("gender"), GENDER_VALUES),
        location=_validate_choice("location", raw.get("location"), LOCATION_VALUES),
        ethnicities=ethnicities or None,
        height_min=height_min,
        height_max=height_max,
        weight_min=weight_min,
        weight_max=weight_max,
        skills=_validate_members("skill", raw.get("skills"), SKILL_VALUES),
        union_status=_validate_choice("union_status", raw.get("union_status"), UNION_VALUES),
        availability=_validate_choice("availability", raw.get("availability"), AVAILABILITY_VALUES),
        travel_radius=_validate_choice("travel_radius", raw.get("travel_radius"), TRAVEL_VALUES),
        broad_search=broad_search,
        confidence=_validate_confidence(raw.get("confidence", 0.0)),
    )


# ============================================================================
# Prompt
# ============================================================================

INTERPRET_SYSTEM = (
    "You are a casting assistant. You convert search requests for stunt performers "
    "into exact database filters and respond with a single JSON object only."
)


def _alias_lines(aliases: Mapping[Any, Sequence[str]]) -> str:
    return "\n".join(
        f'- "{key.value}" (for: {", ".join(words) or "explicitly unknown"})'
        for key, words in aliases.items()
    )


def build_interpret_prompt(message: str, history: Sequence[Turn] = ()) -> str:
    """Prompt listing every legal value for every field"""
    locations = "\n".join(
        f'- {loc.value}: "{loc.label}" (aliases: {", ".join(loc.aliases)})' for loc in ALL_LOCATIONS
    )

    context = ""
    if history:
        turns = "\n".join(
            f"{str(turn.get('role', 'user')).upper()}: {turn.get('content', '')}" for turn in history
        )
        context = f"""
RECENT CONVERSATION (context only, the current query is authoritative):
{turns}
"""

    return f"""Parse this search query into EXACT database filters.

CRITICAL: You can ONLY output the exact values listed below. Never create variations.

GENDER (one value or null):
{_alias_lines(GENDER_ALIASES)}

LOCATION CODES (one code or null):
{locations}

ETHNIC APPEARANCE (array of values or null):
{_alias_lines(ETHNICITY_ALIASES)}
- "POC" or "person of color" -> ["BLACK", "HISPANIC", "ASIAN", "MIDDLE_EASTERN"]
- "dark skin" or "darker skin" -> ["BLACK"]

SKILL CATEGORIES (array, possibly empty):
{_alias_lines(SKILL_ALIASES)}

AVAILABILITY (one value or null):
{_alias_lines(AVAILABILITY_ALIASES)}

UNION STATUS (one value or null):
{_alias_lines(UNION_ALIASES)}

TRAVEL RADIUS (one value or null, ordered {" < ".join(TRAVEL_ORDER)}):
{_alias_lines(TRAVEL_ALIASES)}

BROAD SEARCH: true if the query is generic or exploratory (terms like {", ".join(repr(t) for t in BROAD_SEARCH_TERMS)}), false when it has specific requirements.

VAGUE QUERIES: for "atlanta performers" set ONLY location. For "show me fighters" set ONLY skills. DO NOT infer filters that are not explicitly mentioned.
{context}
USER QUERY: {json.dumps(message)}

RULES:
1. Height in inches (5'8" = 68). For a single height use a +/-2 inch range.
2. Weight in pounds.
3. Only use values from the lists above.

Return ONLY this JSON:
{{
  "gender": "Man|Woman|Non-binary|Other|null",
  "location": "location-code|null",
  "ethnicities": ["WHITE","BLACK","ASIAN","HISPANIC","MIDDLE_EASTERN"] or null,
  "height_min": inches or null,
  "height_max": inches or null,
  "weight_min": pounds or null,
  "weight_max": pounds or null,
  "skills": ["skill-category"],
  "union_status": "SAG-AFTRA|Non-union|Unknown|null",
  "availability": "available|busy|unavailable|null",
  "travel_radius": "{"|".join(TRAVEL_ORDER)}|null",
  "broad_search": true or false,
  "confidence": 0.0-1.0
}}"""


# ============================================================================
# Keyword interpreter
# ============================================================================

_FEET_INCHES = re.compile(
    r"(?<![\d.])([4-8])\s*(?:'|’|ft\.?|feet|foot)\s*"
    r"(?:(1[01]|\d)(?!\d)\s*(?:\"|”|''|inches|inch|in\b)?)?"
)
_PLAIN_INCHES = re.compile(r"(?<![\d.'])(\d{2})\s*(?:inches|inch|in\b)")
_INCH_RANGE = re.compile(r"(?<![\d.'])(\d{2})\s*(?:-|to|and)\s*(\d{2})\s*(?:inches|inch|in\b)")
_WEIGHT = re.compile(r"(?<![\d.])(\d{2,3})\s*(?:lbs?\b|pounds?\b)")
_WEIGHT_RANGE = re.compile(r"(?<![\d.])(\d{2,3})\s*(?:-|to|and)\s*(\d{2,3})\s*(?:lbs?\b|pounds?\b)")

_LOWER_BOUND_WORDS = re.compile(r"(?:over|above|at least|taller than|heavier than|min(?:imum)?|more than)\s*$")
_UPPER_BOUND_WORDS = re.compile(r"(?:under|below|at most|shorter than|lighter than|max(?:imum)?|up to|less than)\s*$")

_SINGLE_HEIGHT_FLEX = 2
_SINGLE_WEIGHT_FLEX = 5


def _alias_pattern(alias: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(alias) + r"(?![a-z0-9])")


def _build_alias_table() -> List[Tuple[str, Any, str, re.Pattern]]:
    """(field, value, alias, pattern) for every alias in every vocabulary"""
    table = []
    sources = [
        ("gender", GENDER_ALIASES),
        ("ethnicities", ETHNICITY_ALIASES),
        ("skills", SKILL_ALIASES),
        ("availability", AVAILABILITY_ALIASES),
        ("union_status", UNION_ALIASES),
        ("travel_radius", TRAVEL_ALIASES),
    ]
    for field_name, aliases in sources:
        for key, words in aliases.items():
            for word in words:
                table.append((field_name, key.value, word, _alias_pattern(word)))
    for phrase, buckets in ETHNICITY_GROUPS.items():
        table.append(("ethnicity_group", tuple(b.value for b in buckets), phrase, _alias_pattern(phrase)))
    for loc in ALL_LOCATIONS:
        for word in loc.aliases:
            table.append(("location", loc.value, word, _alias_pattern(word)))
    return table


class KeywordInterpreter:
    """
    Deterministic interpreter built from the vocabulary alias tables.

    Matches are collected across every field, then accepted longest-first so
    that "non-union" wins over "union" and "free running" over "free". Only
    fields literally present in the text are populated.
    """

    _ALIAS_TABLE = _build_alias_table()
    _BROAD_PATTERNS = [_alias_pattern(term) for term in BROAD_SEARCH_TERMS]

    def interpret(self, message: str, history: Sequence[Turn] = ()) -> ParsedQuery:
        text = re.sub(r"\s+", " ", (message or "").lower()).strip()
        if not text:
            return ParsedQuery.empty()

        raw: Dict[str, Any] = {}
        raw.update(self._match_aliases(text))
        raw.update(self._extract_height(text))
        raw.update(self._extract_weight(text))
        raw["broad_search"] = any(p.search(text) for p in self._BROAD_PATTERNS)

        populated = sum(1 for key in (
            "gender", "location", "ethnicities", "skills",
            "union_status", "availability", "travel_radius",
        ) if raw.get(key))
        populated += 1 if ("height_min" in raw or "height_max" in raw) else 0
        populated += 1 if ("weight_min" in raw or "weight_max" in raw) else 0
        raw["confidence"] = min(0.95, 0.5 + 0.1 * populated) if populated else 0.3

        return validate_parsed_query(raw)

    def _match_aliases(self, text: str) -> Dict[str, Any]:
        candidates = []
        for field_name, value, alias, pattern in self._ALIAS_TABLE:
            for match in pattern.finditer(text):
                candidates.append((field_name, value, match.start(), match.end()))

        # Longest span first, then leftmost
        candidates.sort(key=lambda c: (-(c[3] - c[2]), c[2]))
        accepted = []
        taken: List[Tuple[int, int]] = []
        for field_name, value, start, end in candidates:
            if any(start < t_end and t_start < end for t_start, t_end in taken):
                continue
            taken.append((start, end))
            accepted.append((start, field_name, value))
        accepted.sort(key=lambda a: a[0])

        result: Dict[str, Any] = {}
        skills: List[str] = []
        ethnicities: List[str] = []
        for _, field_name, value in accepted:
            if field_name == "skills":
                skills.append(value)
            elif field_name == "ethnicities":
                ethnicities.append(value)
            elif field_name == "ethnicity_group":
                ethnicities.extend(value)
            elif field_name not in result:
                result[field_name] = value

        if skills:
            result["skills"] = skills
        if ethnicities:
            result["ethnicities"] = ethnicities
        return result

    def _extract_height(self, text: str) -> Dict[str, int]:
        range_match = _INCH_RANGE.search(text)
        if range_match:
            return {"height_min": int(range_match.group(1)), "height_max": int(range_match.group(2))}

        mentions = []
        feet_spans = []
        for match in _FEET_INCHES.finditer(text):
            inches = int(match.group(1)) * 12 + int(match.group(2) or 0)
            mentions.append((match.start(), inches))
            feet_spans.append(match.span())
        for match in _PLAIN_INCHES.finditer(text):
            # "10 in" inside "5 ft 10 in" is already counted
            if any(start <= match.start() < end for start, end in feet_spans):
                continue
            mentions.append((match.start(), int(match.group(1))))
        mentions.sort()

        if not mentions:
            return {}
        if len(mentions) >= 2:
            first, second = mentions[0][1], mentions[1][1]
            return {"height_min": min(first, second), "height_max": max(first, second)}
        return self._bounded(text, mentions[0][0], mentions[0][1], "height", _SINGLE_HEIGHT_FLEX, HEIGHT_DOMAIN)

    def _extract_weight(self, text: str) -> Dict[str, int]:
        range_match = _WEIGHT_RANGE.search(text)
        if range_match:
            return {"weight_min": int(range_match.group(1)), "weight_max": int(range_match.group(2))}

        match = _WEIGHT.search(text)
        if not match:
            return {}
        return self._bounded(text, match.start(), int(match.group(1)), "weight", _SINGLE_WEIGHT_FLEX, WEIGHT_DOMAIN)

    @staticmethod
    def _bounded(
        text: str, position: int, value: int, prefix: str, flex: int, domain: Tuple[int, int]
    ) -> Dict[str, int]:
        """A single value becomes a band, clamped to the domain, unless a bound word precedes it"""
        before = text[max(0, position - 20):position]
        if _LOWER_BOUND_WORDS.search(before):
            return {f"{prefix}_min": value}
        if _UPPER_BOUND_WORDS.search(before):
            return {f"{prefix}_max": value}
        floor, ceiling = domain
        return {f"{prefix}_min": max(floor, value - flex), f"{prefix}_max": min(ceiling, value + flex)}


# ============================================================================
# QueryInterpreter
# ============================================================================

class QueryInterpreter:
    """
    Interprets free text into a ParsedQuery.

    Uses the LLM when one is available; otherwise falls back to the keyword
    interpreter. Never raises: generation errors or unparsable output yield
    ParsedQuery.empty().
    """

    def __init__(
        self,
        llm_client=None,
        max_tokens: int = 400,
        timeout: float = 15.0,
        history_window: int = 3,
    ):
        """
        Args:
            llm_client: LLMClient (or anything with is_available/generate)
            max_tokens: Generation budget for the JSON answer
            timeout: Per-call timeout passed to the provider
            history_window: Number of recent turns offered as context
        """
        self._llm = llm_client
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._history_window = history_window
        self._keywords = KeywordInterpreter()

    @property
    def uses_llm(self) -> bool:
        return self._llm is not None and self._llm.is_available

    def interpret(self, message: str, history: Optional[Sequence[Turn]] = None) -> ParsedQuery:
        """
        Interpret one user message.

        Args:
            message: The current request (authoritative)
            history: Prior turns as {"role", "content"} mappings

        Returns:
            Validated ParsedQuery
        """
        history = list(history or [])[-self._history_window:] if self._history_window else []

        if not self.uses_llm:
            parsed = self._keywords.interpret(message, history)
            logger.debug("Keyword interpretation: %s", parsed)
            return parsed

        try:
            prompt = build_interpret_prompt(message, history)
            raw = self._llm.generate(
                prompt,
                system=INTERPRET_SYSTEM,
                max_tokens=self._max_tokens,
                timeout=self._timeout,
                json_mode=True,
            )
        except Exception as e:
            logger.warning("Query interpretation failed: %s", e)
            return ParsedQuery.empty()

        data = parse_llm_json(raw)
        if not data:
            logger.warning("Query interpretation returned unparsable output: %.200s", raw)
            return ParsedQuery.empty()

        parsed = validate_parsed_query(data)
        logger.info("Interpreted query: %s (confidence %.2f)", "; ".join(parsed.describe()) or "no filters", parsed.confidence)
        return parsed
