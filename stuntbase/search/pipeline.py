"""
Search Pipeline

One conversational turn: Interpreting -> Retrieving -> Composing -> Done.
Requests about a named performer are answered by a direct name lookup first.

Each stage has a success and a fallback outcome and always advances. The two
LLM-bound stages run in worker threads under a timeout; a timeout is treated
exactly like the stage's generation failure.
"""

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence

from ..common.candidate_store import CandidateStore, create_candidate_store
from ..common.config import StuntbaseConfig
from ..common.llm_client import LLMClient
from .composer import RecommendationComposer, RecommendationResult
from .enrichment import ResumeAnalyzer, ResumeInsight
from .interpreter import ParsedQuery, QueryInterpreter
from .name_lookup import NameLookup, compose_name_response, detect_name_query
from .retriever import FALLBACK_FILTER, CandidateRetriever, QueryResult

logger = logging.getLogger("stuntbase.search.pipeline")

Turn = Mapping[str, Any]


class SearchPipeline:
    """
    Wires the interpreter, retriever and composer for one turn at a time.

    Holds no per-request state, so concurrent turns may share one instance.
    """

    def __init__(
        self,
        interpreter: QueryInterpreter,
        retriever: CandidateRetriever,
        composer: RecommendationComposer,
        analyzer: Optional[ResumeAnalyzer] = None,
        name_lookup: Optional[NameLookup] = None,
        interpret_timeout: float = 15.0,
        compose_timeout: float = 30.0,
        enrichment_timeout: float = 10.0,
    ):
        self.interpreter = interpreter
        self.retriever = retriever
        self.composer = composer
        self.analyzer = analyzer
        self.name_lookup = name_lookup
        self.interpret_timeout = interpret_timeout
        self.compose_timeout = compose_timeout
        self.enrichment_timeout = enrichment_timeout

    async def run(
        self,
        message: str,
        history: Sequence[Turn] = (),
        scope_id: Optional[str] = None,
    ) -> RecommendationResult:
        """
        Run one turn.

        Args:
            message: The user's request
            history: Prior turns as {"role", "content"} mappings
            scope_id: Optional project roster to search within

        Returns:
            RecommendationResult (never raises)
        """
        history = list(history or [])

        answer = await self._lookup_names(message, scope_id)
        if answer is not None:
            return answer

        parsed = await self._interpret(message, history)
        result = await self._retrieve(parsed, scope_id)
        logger.info(
            "Retrieval: method=%s matched=%d", result.method, result.total_matched
        )

        enrichment = await self._enrich(message, parsed, result)
        recommendation = await self._compose(message, parsed, result, history, enrichment)
        logger.info(
            "Composed recommendation with %d profile(s)%s",
            len(recommendation.profile_ids),
            " (fallback)" if recommendation.used_fallback else "",
        )
        return recommendation

    async def _lookup_names(self, message: str, scope_id: Optional[str]) -> Optional[RecommendationResult]:
        """Answer requests about named performers directly; None means run the full turn"""
        if self.name_lookup is None:
            return None
        name_query = detect_name_query(message)
        if not name_query.is_name_query:
            return None
        try:
            profiles = await self.name_lookup.search(name_query.names, scope_id=scope_id)
        except Exception as e:
            logger.warning("Name lookup failed, running full search: %s", e)
            return None
        logger.info("Name lookup: %s -> %d profile(s)", ", ".join(name_query.names), len(profiles))
        return compose_name_response(message, name_query, profiles)

    async def _interpret(self, message: str, history: List[Turn]) -> ParsedQuery:
        try:
            parsed = await asyncio.wait_for(
                asyncio.to_thread(self.interpreter.interpret, message, history),
                timeout=self.interpret_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Interpretation timed out after %.1fs", self.interpret_timeout)
            return ParsedQuery.empty()
        except Exception as e:
            logger.warning("Interpretation failed: %s", e)
            return ParsedQuery.empty()
        logger.info("Interpretation: %s", "; ".join(parsed.describe()) or "no filters")
        return parsed

    async def _retrieve(self, parsed: ParsedQuery, scope_id: Optional[str]) -> QueryResult:
        try:
            return await self.retriever.retrieve(parsed, scope_id=scope_id)
        except Exception as e:
            logger.error("Retrieval failed: %s", e)
            return QueryResult(method="fallback", filters_applied=[FALLBACK_FILTER])

    async def _enrich(self, message: str, parsed: ParsedQuery, result: QueryResult) -> List[ResumeInsight]:
        if self.analyzer is None or not self.analyzer.is_active or not result.profiles:
            return []
        context = message
        criteria = parsed.describe()
        if criteria:
            context = f"{message} ({'; '.join(criteria)})"
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.analyzer.analyze, result.profiles, context),
                timeout=self.enrichment_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Resume enrichment timed out after %.1fs", self.enrichment_timeout)
        except Exception as e:
            logger.warning("Resume enrichment failed: %s", e)
        return []

    async def _compose(
        self,
        message: str,
        parsed: ParsedQuery,
        result: QueryResult,
        history: List[Turn],
        enrichment: List[ResumeInsight],
    ) -> RecommendationResult:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.composer.compose, message, parsed, result, history, enrichment),
                timeout=self.compose_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Composition timed out after %.1fs", self.compose_timeout)
        except Exception as e:
            logger.warning("Composition failed: %s", e)
        return self.composer.fallback(parsed, result)


def build_pipeline(
    config: StuntbaseConfig,
    store: Optional[CandidateStore] = None,
    llm_client: Optional[LLMClient] = None,
) -> SearchPipeline:
    """
    Build a pipeline from configuration.

    Args:
        config: Loaded configuration
        store: Candidate store override (defaults to the configured store)
        llm_client: LLM client override (defaults to the configured provider)
    """
    llm = llm_client if llm_client is not None else LLMClient.from_config(config.llm)
    store = store if store is not None else create_candidate_store(config.store)
    search = config.search

    interpreter = QueryInterpreter(
        llm_client=llm,
        timeout=search.interpret_timeout,
        history_window=search.history_window,
    )
    retriever = CandidateRetriever.from_config(store, search)
    composer = RecommendationComposer(
        llm_client=llm,
        dossier_limit=search.dossier_limit,
        fallback_profile_count=search.fallback_profile_count,
        history_window=search.history_window,
        timeout=search.compose_timeout,
    )
    analyzer = ResumeAnalyzer(
        llm_client=llm,
        max_resumes=config.resume.max_resumes,
        enabled=config.resume.enabled,
        timeout=config.resume.timeout,
    )
    name_lookup = NameLookup(store, limit=search.name_lookup_limit) if search.name_lookup else None

    logger.info(
        "Pipeline ready (llm: %s, store: %s)",
        llm.provider if llm.is_available else "unavailable",
        type(store).__name__,
    )
    return SearchPipeline(
        interpreter,
        retriever,
        composer,
        analyzer=analyzer,
        name_lookup=name_lookup,
        interpret_timeout=search.interpret_timeout,
        compose_timeout=search.compose_timeout,
        enrichment_timeout=config.resume.timeout,
    )
