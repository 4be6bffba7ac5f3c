"""
Search - Conversational Talent Search

Key Components:
- QueryInterpreter: Free text -> validated ParsedQuery
- CandidateRetriever: ParsedQuery -> ranked QueryResult
- RecommendationComposer: QueryResult -> prose + profile ids
- ResumeAnalyzer: Optional resume highlights for the top candidates
- NameLookup: Direct answers for requests about a named performer

Pipeline:
0. Name lookup when the message asks about a specific performer
1. Interpret (LLM JSON mode, or keyword matching without an LLM)
2. Retrieve with widened bands, synonym skill matching and fair tie-breaks
3. Compose, ending with a [PROFILES: ...] trailer that is parsed and stripped
"""

from .interpreter import ParsedQuery, QueryInterpreter, KeywordInterpreter, validate_parsed_query
from .retriever import CandidateRetriever, QueryResult
from .composer import RecommendationComposer, RecommendationResult
from .enrichment import ResumeAnalyzer, ResumeInsight
from .name_lookup import NameLookup, NameQuery, detect_name_query
from .pipeline import SearchPipeline, build_pipeline

__all__ = [
    "ParsedQuery",
    "QueryInterpreter",
    "KeywordInterpreter",
    "validate_parsed_query",
    "CandidateRetriever",
    "QueryResult",
    "RecommendationComposer",
    "RecommendationResult",
    "ResumeAnalyzer",
    "ResumeInsight",
    "NameLookup",
    "NameQuery",
    "detect_name_query",
    "SearchPipeline",
    "build_pipeline",
]
