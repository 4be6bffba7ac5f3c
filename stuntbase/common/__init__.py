"""
StuntBase Common Module

Shared infrastructure for the search stages: configuration, LLM access,
closed vocabularies and the read-only candidate store.
"""

from .config import StuntbaseConfig, load_config
from .candidate_store import (
    CandidateStore,
    Condition,
    InMemoryCandidateStore,
    PostgrestCandidateStore,
    StoreQuery,
    create_candidate_store,
)
from .errors import CandidateStoreError, GenerationFailure, RetrievalFailure, StuntbaseError
from .llm_client import LLMClient

__all__ = [
    "StuntbaseConfig",
    "load_config",
    "CandidateStore",
    "Condition",
    "InMemoryCandidateStore",
    "PostgrestCandidateStore",
    "StoreQuery",
    "create_candidate_store",
    "CandidateStoreError",
    "GenerationFailure",
    "RetrievalFailure",
    "StuntbaseError",
    "LLMClient",
]
