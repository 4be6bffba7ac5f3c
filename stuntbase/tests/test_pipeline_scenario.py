"""
Search Pipeline Scenario Tests

End-to-end turns over an in-memory candidate pool:
- Specific request resolved by the keyword interpreter (no LLM configured)
- The same request with a scripted LLM for interpretation and composition
- A vague location request that triggers the broad search
- Interpretation failure and timeout
- Retrieval failure degrading to the visible pool
"""

import json
import time
import pytest
from unittest.mock import Mock


# ============================================================================
# Candidate pool
# ============================================================================

POOL = [
    {
        "id": "atl-boxer", "full_name": "Dana Reyes", "gender": "Woman", "is_public": True,
        "primary_location_structured": "atlanta-ga", "location": "Atlanta, GA",
        "height_feet": 5, "height_inches": 7, "weight_lbs": 135,
        "union_status": "SAG-AFTRA", "availability_status": "available",
        "bio": "Fight double with ten years in the ring.",
        "profile_skills": [{"skill_id": "Boxing", "proficiency_level": "expert"}],
    },
    {
        "id": "atl-dancer", "full_name": "Marcus Hill", "gender": "Man", "is_public": True,
        "primary_location_structured": "atlanta-ga", "location": "Atlanta, GA",
        "height_feet": 5, "height_inches": 9,
        "profile_skills": [{"skill_id": "Ballet"}],
    },
    {
        "id": "atl-tall", "full_name": "Sam Okafor", "gender": "Man", "is_public": True,
        "primary_location_structured": "atlanta-ga",
        "height_feet": 6, "height_inches": 4,
        "profile_skills": [{"skill_id": "Karate"}],
    },
    {
        "id": "la-fighter", "full_name": "Lee Tran", "gender": "Man", "is_public": True,
        "primary_location_structured": "los-angeles-ca", "location": "Burbank, CA",
        "height_feet": 5, "height_inches": 8,
        "profile_skills": [{"skill_id": "Muay Thai"}],
    },
    {
        "id": "atl-freetext", "full_name": "Rae Collins", "gender": "Woman", "is_public": True,
        "location": "Atlanta, Georgia",
        "profile_skills": [{"skill_id": "Precision Driving"}],
    },
    {
        "id": "atl-private", "full_name": "Hidden Person", "is_public": False,
        "primary_location_structured": "atlanta-ga", "height_feet": 5, "height_inches": 8,
        "profile_skills": [{"skill_id": "Boxing"}],
    },
]


def make_config(**search):
    from stuntbase.common.config import StuntbaseConfig

    config = StuntbaseConfig()
    config.search.random_seed = 7
    for key, value in search.items():
        setattr(config.search, key, value)
    return config


def offline_llm():
    from stuntbase.common.llm_client import LLMClient
    return LLMClient(provider="openai", openai_api_key="")


def scripted_llm(interpretation, composition):
    """JSON-mode calls get the interpretation, prose calls the composition"""
    llm = Mock()
    llm.is_available = True
    llm.provider = "scripted"

    def generate(prompt, system=None, max_tokens=512, timeout=30.0, json_mode=False):
        if json_mode and "Parse this search query" in prompt:
            return json.dumps(interpretation)
        if json_mode:
            return "{}"
        return composition

    llm.generate.side_effect = generate
    return llm


class SlowInterpreter:
    def __init__(self, delay):
        self.delay = delay

    def interpret(self, message, history=None):
        time.sleep(self.delay)
        from stuntbase.search.interpreter import ParsedQuery
        return ParsedQuery(gender="Man", confidence=0.9)


class BrokenFilteredStore:
    """Fails every filtered read, answers the bare visibility read"""

    def __init__(self, rows):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        self._inner = InMemoryCandidateStore(rows)

    @property
    def is_configured(self):
        return True

    async def fetch(self, query):
        from stuntbase.common.errors import CandidateStoreError

        if query.any_of or len(query.conditions) > 1:
            raise CandidateStoreError("statement timeout")
        return await self._inner.fetch(query)


# ============================================================================
# Scenarios
# ============================================================================

class TestSpecificRequest:
    @pytest.mark.asyncio
    async def test_keyword_path_finds_synonym_match(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(POOL), llm_client=offline_llm())
        result = await pipeline.run("I need a 5'8 martial artist in Atlanta")
        data = result.to_dict()

        assert data["profileIds"] == ["atl-boxer"]
        assert data["searchStats"]["method"] == "structured"
        assert data["searchStats"]["totalFound"] == 1
        assert data["searchStats"]["filtersApplied"] == [
            "location: atlanta-ga",
            "height: 5'6\" - 5'10\" (±3\" flex)",
            "skills: fight (with related skills)",
        ]
        assert data["responseText"] == "I found 1 performer(s) that could work for your project!"

    @pytest.mark.asyncio
    async def test_llm_path_returns_trailer_ids(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        llm = scripted_llm(
            {"location": "atlanta-ga", "height_min": 66, "height_max": 70, "skills": ["fight"],
             "broad_search": False, "confidence": 0.92},
            "Dana Reyes is a 5'7\" expert boxer based in Atlanta.\n\n[PROFILES: atl-boxer, made-up-id]",
        )
        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(POOL), llm_client=llm)

        result = await pipeline.run(
            "I need a 5'8 martial artist in Atlanta",
            history=[{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello!"}],
        )

        assert result.profile_ids == ["atl-boxer"]
        assert result.response_text == "Dana Reyes is a 5'7\" expert boxer based in Atlanta."
        assert result.confidence == 0.92
        assert not result.used_fallback

    @pytest.mark.asyncio
    async def test_scoped_search(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        rows = [dict(row) for row in POOL]
        rows[3]["project_submissions"] = [{"project_id": "proj-7"}]
        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(rows), llm_client=offline_llm())

        result = await pipeline.run("martial artists", scope_id="proj-7")

        assert result.profile_ids == ["la-fighter"]
        assert result.filters_applied[0] == "project_database"


class TestVagueRequest:
    @pytest.mark.asyncio
    async def test_broad_location_search(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        pipeline = build_pipeline(
            make_config(fallback_profile_count=10), store=InMemoryCandidateStore(POOL), llm_client=offline_llm(),
        )
        result = await pipeline.run("atlanta performers")

        assert set(result.profile_ids) == {"atl-boxer", "atl-dancer", "atl-tall", "atl-freetext"}
        assert result.filters_applied == ["location: atlanta-ga (broad search)"]
        assert result.profile_ids[0] == "atl-boxer"


class TestStageFailures:
    @pytest.mark.asyncio
    async def test_interpretation_failure_still_recommends(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.common.errors import GenerationFailure
        from stuntbase.search.pipeline import build_pipeline

        llm = Mock()
        llm.is_available = True
        llm.provider = "broken"
        llm.generate.side_effect = GenerationFailure("upstream 500")
        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(POOL), llm_client=llm)

        result = await pipeline.run("I need a 5'8 martial artist in Atlanta")

        assert result.confidence == 0.0
        assert result.method == "structured"
        assert result.filters_applied == []
        assert result.total_found == 5
        assert len(result.profile_ids) == 3
        assert "atl-private" not in result.profile_ids
        assert result.used_fallback

    @pytest.mark.asyncio
    async def test_interpretation_timeout(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.composer import RecommendationComposer
        from stuntbase.search.pipeline import SearchPipeline
        from stuntbase.search.retriever import CandidateRetriever

        pipeline = SearchPipeline(
            SlowInterpreter(delay=0.5),
            CandidateRetriever(InMemoryCandidateStore(POOL)),
            RecommendationComposer(),
            interpret_timeout=0.05,
        )

        result = await pipeline.run("tall guys")

        assert result.confidence == 0.0
        assert result.filters_applied == []
        assert result.total_found == 5

    @pytest.mark.asyncio
    async def test_composer_exception_uses_fallback(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.composer import RecommendationComposer
        from stuntbase.search.interpreter import QueryInterpreter
        from stuntbase.search.pipeline import SearchPipeline
        from stuntbase.search.retriever import CandidateRetriever

        class ExplodingComposer(RecommendationComposer):
            def compose(self, *args, **kwargs):
                raise RuntimeError("template error")

        pipeline = SearchPipeline(
            QueryInterpreter(),
            CandidateRetriever(InMemoryCandidateStore(POOL)),
            ExplodingComposer(),
        )
        result = await pipeline.run("boxers in atlanta")

        assert result.profile_ids
        assert result.used_fallback

    @pytest.mark.asyncio
    async def test_retrieval_failure_uses_visible_pool(self):
        from stuntbase.search.pipeline import build_pipeline

        rows = [dict(POOL[0], id=f"pool-{i}") for i in range(25)] + [POOL[-1]]
        pipeline = build_pipeline(make_config(), store=BrokenFilteredStore(rows), llm_client=offline_llm())

        result = await pipeline.run("I need a 5'8 martial artist in Atlanta")
        data = result.to_dict()

        assert data["searchStats"]["method"] == "fallback"
        assert data["searchStats"]["filtersApplied"] == ["fallback - no filters applied"]
        assert data["searchStats"]["totalFound"] == 20
        assert len(data["profileIds"]) == 3
        assert all(pid.startswith("pool-") for pid in data["profileIds"])

    @pytest.mark.asyncio
    async def test_empty_pool(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.composer import NO_MATCHES_TEXT
        from stuntbase.search.pipeline import build_pipeline

        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(), llm_client=offline_llm())
        result = await pipeline.run("swimmers in dublin")

        assert result.profile_ids == []
        assert result.response_text == NO_MATCHES_TEXT

    @pytest.mark.asyncio
    async def test_retriever_exception_never_reaches_caller(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.composer import NO_MATCHES_TEXT, RecommendationComposer
        from stuntbase.search.interpreter import QueryInterpreter
        from stuntbase.search.pipeline import SearchPipeline
        from stuntbase.search.retriever import CandidateRetriever

        class ExplodingRetriever(CandidateRetriever):
            async def retrieve(self, parsed, scope_id=None):
                raise RuntimeError("pool exhausted")

        pipeline = SearchPipeline(
            QueryInterpreter(),
            ExplodingRetriever(InMemoryCandidateStore(POOL)),
            RecommendationComposer(),
        )
        result = await pipeline.run("boxers in atlanta")

        assert result.method == "fallback"
        assert result.filters_applied == ["fallback - no filters applied"]
        assert result.profile_ids == []
        assert result.response_text == NO_MATCHES_TEXT

    @pytest.mark.asyncio
    async def test_store_returning_garbage_on_every_read(self):
        from stuntbase.search.pipeline import build_pipeline

        class GarbageStore:
            is_configured = True

            async def fetch(self, query):
                return None

        pipeline = build_pipeline(make_config(), store=GarbageStore(), llm_client=offline_llm())
        result = await pipeline.run("I need a 5'8 martial artist in Atlanta")

        assert result.method == "fallback"
        assert result.profile_ids == []


class TestNameLookup:
    @pytest.mark.asyncio
    async def test_named_performer_skips_the_search(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        llm = Mock()
        llm.is_available = True
        llm.provider = "scripted"
        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(POOL), llm_client=llm)

        result = await pipeline.run("Tell me about Dana Reyes")
        data = result.to_dict()

        assert data["profileIds"] == ["atl-boxer"]
        assert data["searchStats"]["method"] == "name_lookup"
        assert data["searchStats"]["filtersApplied"] == ["name: Dana Reyes"]
        assert "Dana Reyes" in data["responseText"]
        assert "Atlanta, GA" in data["responseText"]
        llm.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_private_profiles_are_not_found_by_name(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        rows = POOL + [{"id": "private-jv", "full_name": "Jordan Vale", "is_public": False}]
        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(rows), llm_client=offline_llm())
        result = await pipeline.run("Jordan Vale")

        assert result.method == "name_lookup"
        assert result.profile_ids == []
        assert "couldn't find" in result.response_text

    @pytest.mark.asyncio
    async def test_name_lookup_respects_scope(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        rows = [dict(row) for row in POOL]
        rows[3]["project_submissions"] = [{"project_id": "proj-7"}]
        pipeline = build_pipeline(make_config(), store=InMemoryCandidateStore(rows), llm_client=offline_llm())

        inside = await pipeline.run("Lee Tran's profile", scope_id="proj-7")
        outside = await pipeline.run("Dana Reyes's profile", scope_id="proj-7")

        assert inside.profile_ids == ["la-fighter"]
        assert outside.profile_ids == []

    @pytest.mark.asyncio
    async def test_disabled_name_lookup_runs_full_search(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        from stuntbase.search.pipeline import build_pipeline

        config = make_config(name_lookup=False)
        pipeline = build_pipeline(config, store=InMemoryCandidateStore(POOL), llm_client=offline_llm())

        result = await pipeline.run("Tell me about Dana Reyes")

        assert result.method == "structured"

    @pytest.mark.asyncio
    async def test_name_lookup_store_failure_falls_through(self):
        from stuntbase.search.pipeline import build_pipeline

        rows = [dict(POOL[0], id=f"pool-{i}") for i in range(5)]
        pipeline = build_pipeline(make_config(), store=BrokenFilteredStore(rows), llm_client=offline_llm())

        result = await pipeline.run("Tell me about Dana Reyes")

        assert result.method == "structured"
        assert len(result.profile_ids) == 3
        assert all(pid.startswith("pool-") for pid in result.profile_ids)
