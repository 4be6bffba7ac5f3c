"""
Candidate Store

Read-only access to performer profiles. The retriever expresses what it wants
as a StoreQuery (AND'd conditions plus OR-groups); each back-end renders that
to its own query language.

- InMemoryCandidateStore: evaluates the query over dict rows (tests, local dev)
- PostgrestCandidateStore: renders to PostgREST parameters (Supabase)
"""

import copy
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

from .errors import CandidateStoreError

logger = logging.getLogger("stuntbase.common.candidate_store")

OPERATORS = ("eq", "in", "gte", "lte", "ilike", "is_null")

# Embedded sub-collections fetched with every profile
EMBEDDED_SELECT = (
    "profile_photos(file_path,file_name,is_primary,sort_order),"
    "profile_skills(skill_id,proficiency_level,years_experience),"
    "profile_certifications(certification_id,date_obtained,expiration_date,certification_number)"
)


@dataclass(frozen=True)
class Condition:
    """A single predicate over a (possibly dotted) profile field"""
    field: str
    op: str
    value: Any = None

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")


@dataclass
class StoreQuery:
    """
    Conditions and OR-groups are AND'd together. Each OR-group is satisfied
    when any of its conditions holds.
    """
    conditions: List[Condition] = field(default_factory=list)
    any_of: List[List[Condition]] = field(default_factory=list)
    scope_id: Optional[str] = None
    limit: Optional[int] = None


class CandidateStore(ABC):
    """Read-only profile source"""

    @abstractmethod
    async def fetch(self, query: StoreQuery) -> List[Dict[str, Any]]:
        """
        Return profile rows matching the query, at most ``query.limit``.

        Raises:
            RetrievalFailure: if the store cannot answer
        """
        pass

    @property
    def is_configured(self) -> bool:
        return True


# ============================================================================
# In-memory
# ============================================================================

def _resolve(row: Mapping[str, Any], path: str) -> List[Any]:
    """Values at a dotted path, flattening nested lists"""
    values: List[Any] = [row]
    for part in path.split("."):
        next_values = []
        for value in values:
            if not isinstance(value, Mapping):
                continue
            item = value.get(part)
            if isinstance(item, list):
                next_values.extend(item)
            else:
                next_values.append(item)
        values = next_values
    return values


def _like_to_regex(pattern: str) -> re.Pattern:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _same(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is right
    if left == right:
        return True
    if isinstance(left, bool) or isinstance(right, bool):
        return False
    return str(left) == str(right)


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _matches_value(value: Any, condition: Condition) -> bool:
    op = condition.op
    if op == "eq":
        return _same(value, condition.value)
    if op == "in":
        return any(_same(value, option) for option in condition.value)
    if op in ("gte", "lte"):
        number = _as_number(value)
        bound = _as_number(condition.value)
        if number is None or bound is None:
            return False
        return number >= bound if op == "gte" else number <= bound
    if op == "ilike":
        return isinstance(value, str) and _like_to_regex(condition.value).fullmatch(value) is not None
    return False


def matches(row: Mapping[str, Any], condition: Condition) -> bool:
    """Evaluate one condition against one row"""
    values = _resolve(row, condition.field)
    if condition.op == "is_null":
        is_null = all(v is None for v in values)
        return is_null if condition.value is not False else not is_null
    return any(_matches_value(v, condition) for v in values)


class InMemoryCandidateStore(CandidateStore):
    """Candidate store over a list of profile rows"""

    def __init__(self, rows: Optional[Iterable[Mapping[str, Any]]] = None):
        self._rows = [dict(row) for row in (rows or [])]

    def __len__(self) -> int:
        return len(self._rows)

    def add(self, row: Mapping[str, Any]) -> None:
        self._rows.append(dict(row))

    async def fetch(self, query: StoreQuery) -> List[Dict[str, Any]]:
        results = []
        for row in self._rows:
            if query.scope_id is not None and not matches(
                row, Condition("project_submissions.project_id", "eq", query.scope_id)
            ):
                continue
            if not all(matches(row, c) for c in query.conditions):
                continue
            if not all(any(matches(row, c) for c in group) for group in query.any_of if group):
                continue
            results.append(copy.deepcopy(row))
            if query.limit is not None and len(results) >= query.limit:
                break
        return results


# ============================================================================
# PostgREST
# ============================================================================

_RESERVED = re.compile(r"[,().:\"\s]")


def _literal(value: Any) -> str:
    """Render a value for a PostgREST filter, quoting where the grammar needs it"""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if _RESERVED.search(text):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


def _raw(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _operand(condition: Condition, nested: bool = False) -> str:
    """Operator and value; values inside or=(...) groups are quoted"""
    op, value = condition.op, condition.value
    render = _literal if nested else _raw
    if op == "in":
        return "in.(" + ",".join(_literal(v) for v in value) + ")"
    if op == "ilike":
        return "ilike." + render(str(value).replace("%", "*"))
    if op == "is_null":
        return "not.is.null" if value is False else "is.null"
    return f"{op}.{render(value)}"


def render_postgrest_params(query: StoreQuery) -> List[Tuple[str, str]]:
    """StoreQuery -> ordered PostgREST query parameters"""
    select = "*," + EMBEDDED_SELECT
    if query.scope_id is not None:
        select += ",project_submissions!inner(project_id)"

    params: List[Tuple[str, str]] = [("select", select)]
    if query.scope_id is not None:
        params.append(("project_submissions.project_id", f"eq.{query.scope_id}"))
    for condition in query.conditions:
        params.append((condition.field, _operand(condition)))

    groups = [
        "(" + ",".join(f"{c.field}.{_operand(c, nested=True)}" for c in group) + ")"
        for group in query.any_of if group
    ]
    if len(groups) == 1:
        params.append(("or", groups[0]))
    elif groups:
        params.append(("and", "(" + ",".join(f"or{g}" for g in groups) + ")"))

    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


class PostgrestCandidateStore(CandidateStore):
    """Candidate store backed by a PostgREST endpoint (e.g. Supabase)"""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        table: str = "profiles",
        timeout: float = 10.0,
    ):
        """
        Args:
            base_url: Project URL; "/rest/v1/<table>" is appended
            api_key: Service or anon key sent as apikey + bearer token
            table: Profiles table name
            timeout: Request timeout in seconds
        """
        self._base_url = (base_url or "").rstrip("/")
        self._api_key = api_key
        self._table = table
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/rest/v1/{self._table}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def fetch(self, query: StoreQuery) -> List[Dict[str, Any]]:
        if not self.is_configured:
            raise CandidateStoreError("Candidate store URL is not configured")

        params = render_postgrest_params(query)
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                response = await client.get(self.endpoint, params=params, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise CandidateStoreError(
                f"Candidate store returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise CandidateStoreError(f"Candidate store request failed: {e}") from e
        except ValueError as e:
            raise CandidateStoreError(f"Candidate store returned invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise CandidateStoreError(f"Unexpected candidate store payload: {type(data).__name__}")
        logger.debug("Fetched %d rows from %s", len(data), self._table)
        return data


def create_candidate_store(config) -> CandidateStore:
    """
    Factory: PostgREST store when a URL is configured, otherwise an empty
    in-memory store (every search then returns no candidates).

    Args:
        config: StoreConfig
    """
    if config.url:
        return PostgrestCandidateStore(
            base_url=config.url,
            api_key=config.api_key,
            table=config.table,
            timeout=config.timeout,
        )
    logger.info("Candidate store URL not configured, using an empty in-memory store")
    return InMemoryCandidateStore()
