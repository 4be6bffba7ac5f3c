"""
StuntBase Search Server

FastAPI entry point for the conversational talent search.

Endpoints:
- POST /chat: One search turn
- GET /health: Health check
- GET /vocabulary: Closed vocabularies (for clients building filter UIs)

Authentication and rate limiting are handled in front of this service.
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common.candidate_store import CandidateStore, create_candidate_store
from .common.config import StuntbaseConfig, load_config
from .common.llm_client import LLMClient
from .common.vocabulary import vocabulary_snapshot
from .search.pipeline import SearchPipeline, build_pipeline

logger = logging.getLogger("stuntbase.server")

load_dotenv()


# Global state
config: Optional[StuntbaseConfig] = None
llm_client: Optional[LLMClient] = None
store: Optional[CandidateStore] = None
pipeline: Optional[SearchPipeline] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, llm_client, store, pipeline

    config = load_config()
    llm_client = LLMClient.from_config(config.llm)
    store = create_candidate_store(config.store)
    pipeline = build_pipeline(config, store=store, llm_client=llm_client)
    logger.info("Search service ready")

    yield

    logger.info("Search service shutting down")


app = FastAPI(
    title="StuntBase Search",
    description="Conversational talent search for stunt performers",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class ChatTurn(BaseModel):
    """One prior conversation turn"""
    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):
    """Search turn request"""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    history: List[ChatTurn] = Field(default_factory=list)
    scope_id: Optional[str] = Field(default=None, alias="scopeId")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value.strip()


# =============================================================================
# Endpoints
# =============================================================================

@app.post("/chat")
async def chat(request: ChatRequest):
    """Run one search turn and return the public response contract"""
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Search pipeline not initialized")

    result = await pipeline.run(
        request.message,
        history=[turn.model_dump() for turn in request.history],
        scope_id=request.scope_id,
    )
    return result.to_dict()


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "stuntbase-search",
        "initialized": pipeline is not None,
        "llm_available": llm_client.is_available if llm_client is not None else False,
        "store_configured": store.is_configured if store is not None else False,
    }


@app.get("/vocabulary")
async def vocabulary():
    """Closed vocabularies used for interpretation and filtering"""
    return vocabulary_snapshot()


def run_server():
    """Run the search server"""
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the StuntBase search server.")
    parser.add_argument("--host", default=None, help="Bind address (default from config).")
    parser.add_argument("--port", type=int, default=None, help="Port (default from config).")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server_config = load_config().server
    host = args.host or server_config.host
    port = args.port or server_config.port

    logger.info("Starting server on %s:%d", host, port)
    uvicorn.run(
        "stuntbase.server:app",
        host=host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
