"""
Tests for the candidate store back-ends

In-memory evaluation of StoreQuery and its PostgREST rendering.
"""

import httpx
import pytest
from unittest.mock import patch


ROWS = [
    {
        "id": "1", "full_name": "Ava Stone", "gender": "Woman", "is_public": True,
        "primary_location_structured": "atlanta-ga", "location": "Atlanta, Georgia",
        "height_feet": 5, "height_inches": 7, "weight_lbs": 130,
        "union_status": "SAG-AFTRA", "travel_radius": "national",
        "profile_skills": [{"skill_id": "Boxing"}],
        "project_submissions": [{"project_id": "proj-1"}],
    },
    {
        "id": "2", "full_name": "Ben Ortiz", "gender": "Man", "is_public": True,
        "secondary_location_structured": "atlanta-ga", "location": "Savannah",
        "height_feet": 6, "height_inches": 1, "weight_lbs": 190,
        "union_status": None, "travel_radius": "local",
        "project_submissions": [],
    },
    {
        "id": "3", "full_name": "Hidden Person", "gender": "Woman", "is_public": False,
        "primary_location_structured": "atlanta-ga",
    },
    {
        "id": "4", "full_name": "Cleo Park", "gender": "Woman", "is_public": True,
        "primary_location_structured": "los-angeles-ca", "location": "Atlanta area",
        "union_status": "Non-Union", "weight_lbs": "125",
    },
]


class TestCondition:
    def test_rejects_unknown_operator(self):
        from stuntbase.common.candidate_store import Condition

        with pytest.raises(ValueError):
            Condition("gender", "neq", "Man")


class TestInMemoryCandidateStore:
    @pytest.fixture
    def store(self):
        from stuntbase.common.candidate_store import InMemoryCandidateStore
        return InMemoryCandidateStore(ROWS)

    @pytest.mark.asyncio
    async def test_visibility_and_eq(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        rows = await store.fetch(StoreQuery(conditions=[
            Condition("is_public", "eq", True),
            Condition("gender", "eq", "Woman"),
        ]))

        assert [r["id"] for r in rows] == ["1", "4"]

    @pytest.mark.asyncio
    async def test_any_of_group(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        rows = await store.fetch(StoreQuery(
            conditions=[Condition("is_public", "eq", True)],
            any_of=[[
                Condition("primary_location_structured", "eq", "atlanta-ga"),
                Condition("secondary_location_structured", "eq", "atlanta-ga"),
            ]],
        ))

        assert [r["id"] for r in rows] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_ilike_is_case_insensitive(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        rows = await store.fetch(StoreQuery(conditions=[Condition("location", "ilike", "%atlanta%")]))

        assert {r["id"] for r in rows} == {"1", "4"}

    @pytest.mark.asyncio
    async def test_numeric_bounds_tolerate_strings(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        rows = await store.fetch(StoreQuery(conditions=[
            Condition("weight_lbs", "gte", 120),
            Condition("weight_lbs", "lte", 135),
        ]))

        assert {r["id"] for r in rows} == {"1", "4"}

    @pytest.mark.asyncio
    async def test_in_and_is_null(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        rows = await store.fetch(StoreQuery(conditions=[
            Condition("travel_radius", "in", ["national", "international"]),
        ]))
        assert [r["id"] for r in rows] == ["1"]

        rows = await store.fetch(StoreQuery(
            conditions=[Condition("is_public", "eq", True)],
            any_of=[[
                Condition("union_status", "ilike", "%non-union%"),
                Condition("union_status", "is_null", True),
            ]],
        ))
        assert [r["id"] for r in rows] == ["2", "4"]

    @pytest.mark.asyncio
    async def test_scope_and_nested_fields(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        rows = await store.fetch(StoreQuery(scope_id="proj-1"))
        assert [r["id"] for r in rows] == ["1"]

        rows = await store.fetch(StoreQuery(conditions=[
            Condition("profile_skills.skill_id", "eq", "Boxing"),
        ]))
        assert [r["id"] for r in rows] == ["1"]

    @pytest.mark.asyncio
    async def test_limit_and_copies(self, store):
        from stuntbase.common.candidate_store import StoreQuery

        rows = await store.fetch(StoreQuery(limit=2))
        assert len(rows) == 2

        rows[0]["full_name"] = "Changed"
        again = await store.fetch(StoreQuery(limit=1))
        assert again[0]["full_name"] == "Ava Stone"

    def test_add(self, store):
        store.add({"id": "5", "is_public": True})
        assert len(store) == 5


class TestPostgrestRendering:
    def test_plain_conditions(self):
        from stuntbase.common.candidate_store import (
            Condition, StoreQuery, EMBEDDED_SELECT, render_postgrest_params,
        )

        params = render_postgrest_params(StoreQuery(
            conditions=[
                Condition("is_public", "eq", True),
                Condition("gender", "eq", "Woman"),
                Condition("ethnicity", "in", ["BLACK", "ASIAN"]),
                Condition("union_status", "ilike", "%SAG%"),
                Condition("height_feet", "gte", 5),
            ],
            limit=50,
        ))

        assert params == [
            ("select", "*," + EMBEDDED_SELECT),
            ("is_public", "eq.true"),
            ("gender", "eq.Woman"),
            ("ethnicity", "in.(BLACK,ASIAN)"),
            ("union_status", "ilike.*SAG*"),
            ("height_feet", "gte.5"),
            ("limit", "50"),
        ]

    def test_single_or_group(self):
        from stuntbase.common.candidate_store import Condition, StoreQuery, render_postgrest_params

        params = dict(render_postgrest_params(StoreQuery(any_of=[[
            Condition("primary_location_structured", "eq", "atlanta-ga"),
            Condition("secondary_location_structured", "eq", "atlanta-ga"),
            Condition("location", "ilike", "%Atlanta%"),
        ]])))

        assert params["or"] == (
            "(primary_location_structured.eq.atlanta-ga,"
            "secondary_location_structured.eq.atlanta-ga,"
            "location.ilike.*Atlanta*)"
        )

    def test_several_or_groups(self):
        from stuntbase.common.candidate_store import Condition, StoreQuery, render_postgrest_params

        params = dict(render_postgrest_params(StoreQuery(any_of=[
            [Condition("gender", "eq", "Man"), Condition("gender", "eq", "Woman")],
            [Condition("union_status", "ilike", "%non-union%"), Condition("union_status", "is_null", True)],
        ])))

        assert "or" not in params
        assert params["and"] == (
            "(or(gender.eq.Man,gender.eq.Woman),"
            "or(union_status.ilike.*non-union*,union_status.is.null))"
        )

    def test_nested_values_are_quoted(self):
        from stuntbase.common.candidate_store import Condition, StoreQuery, render_postgrest_params

        params = dict(render_postgrest_params(StoreQuery(any_of=[[
            Condition("location", "eq", "Atlanta, GA"),
        ]])))

        assert params["or"] == '(location.eq."Atlanta, GA")'

    def test_scope(self):
        from stuntbase.common.candidate_store import StoreQuery, render_postgrest_params

        params = render_postgrest_params(StoreQuery(scope_id="proj-9"))

        assert params[0][1].endswith(",project_submissions!inner(project_id)")
        assert ("project_submissions.project_id", "eq.proj-9") in params


class TestPostgrestCandidateStore:
    @pytest.fixture
    def store(self):
        from stuntbase.common.candidate_store import PostgrestCandidateStore
        return PostgrestCandidateStore("https://db.example.test/", api_key="secret")

    def _patched_client(self, handler):
        real_client = httpx.AsyncClient
        transport = httpx.MockTransport(handler)
        return patch(
            "stuntbase.common.candidate_store.httpx.AsyncClient",
            side_effect=lambda **kwargs: real_client(transport=transport, **kwargs),
        )

    def test_endpoint(self, store):
        assert store.endpoint == "https://db.example.test/rest/v1/profiles"
        assert store.is_configured

    @pytest.mark.asyncio
    async def test_fetch(self, store):
        from stuntbase.common.candidate_store import Condition, StoreQuery

        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["headers"] = request.headers
            return httpx.Response(200, json=[{"id": "1"}])

        with self._patched_client(handler):
            rows = await store.fetch(StoreQuery(conditions=[Condition("is_public", "eq", True)], limit=5))

        assert rows == [{"id": "1"}]
        assert seen["url"].params["is_public"] == "eq.true"
        assert seen["url"].params["limit"] == "5"
        assert seen["headers"]["apikey"] == "secret"
        assert seen["headers"]["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_http_error_raises_store_error(self, store):
        from stuntbase.common.candidate_store import StoreQuery
        from stuntbase.common.errors import CandidateStoreError, RetrievalFailure

        with self._patched_client(lambda request: httpx.Response(500, text="boom")):
            with pytest.raises(CandidateStoreError) as exc_info:
                await store.fetch(StoreQuery())

        assert isinstance(exc_info.value, RetrievalFailure)
        assert "500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unexpected_payload(self, store):
        from stuntbase.common.candidate_store import StoreQuery
        from stuntbase.common.errors import CandidateStoreError

        with self._patched_client(lambda request: httpx.Response(200, json={"rows": []})):
            with pytest.raises(CandidateStoreError):
                await store.fetch(StoreQuery())

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        from stuntbase.common.candidate_store import PostgrestCandidateStore, StoreQuery
        from stuntbase.common.errors import CandidateStoreError

        store = PostgrestCandidateStore("")
        assert not store.is_configured
        with pytest.raises(CandidateStoreError):
            await store.fetch(StoreQuery())


class TestCreateCandidateStore:
    def test_factory(self):
        from stuntbase.common.candidate_store import (
            create_candidate_store, InMemoryCandidateStore, PostgrestCandidateStore,
        )
        from stuntbase.common.config import StoreConfig

        assert isinstance(create_candidate_store(StoreConfig()), InMemoryCandidateStore)
        assert isinstance(
            create_candidate_store(StoreConfig(url="https://db.example.test")), PostgrestCandidateStore
        )
