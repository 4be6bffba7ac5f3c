"""
Configuration Management for the StuntBase search service

Loads configuration from ~/.stuntbase/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("stuntbase.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".stuntbase"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class LLMConfig:
    """LLM provider configuration shared by the interpreter, composer and resume analyzer"""
    provider: str = "openai"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"


@dataclass
class StoreConfig:
    """Candidate store (PostgREST / Supabase) configuration"""
    url: str = ""
    api_key: str = ""
    table: str = "profiles"
    timeout: float = 10.0


@dataclass
class SearchConfig:
    """Retrieval and composition tuning"""
    result_limit: int = 50
    broad_result_limit: int = 100
    fallback_limit: int = 20
    height_tolerance: int = 3   # inches added on each side of the parsed band
    weight_tolerance: int = 10  # lbs added on each side of the parsed band
    history_window: int = 3
    dossier_limit: int = 25
    fallback_profile_count: int = 3
    interpret_timeout: float = 15.0
    compose_timeout: float = 30.0
    random_seed: Optional[int] = None
    name_lookup: bool = True  # answer "find <Name>" requests with a direct name search
    name_lookup_limit: int = 10


@dataclass
class ResumeConfig:
    """Resume enrichment configuration"""
    enabled: bool = True
    max_resumes: int = 2
    timeout: float = 10.0


@dataclass
class ServerConfig:
    """HTTP entry point configuration"""
    host: str = "0.0.0.0"
    port: int = 8090


@dataclass
class StuntbaseConfig:
    """Main configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    resume: ResumeConfig = field(default_factory=ResumeConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        url=store_data.get("url", ""),
        api_key=store_data.get("api_key", ""),
        table=store_data.get("table", "profiles"),
        timeout=float(store_data.get("timeout", 10.0)),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    defaults = SearchConfig()
    return SearchConfig(
        result_limit=search_data.get("result_limit", defaults.result_limit),
        broad_result_limit=search_data.get("broad_result_limit", defaults.broad_result_limit),
        fallback_limit=search_data.get("fallback_limit", defaults.fallback_limit),
        height_tolerance=search_data.get("height_tolerance", defaults.height_tolerance),
        weight_tolerance=search_data.get("weight_tolerance", defaults.weight_tolerance),
        history_window=search_data.get("history_window", defaults.history_window),
        dossier_limit=search_data.get("dossier_limit", defaults.dossier_limit),
        fallback_profile_count=search_data.get("fallback_profile_count", defaults.fallback_profile_count),
        interpret_timeout=float(search_data.get("interpret_timeout", defaults.interpret_timeout)),
        compose_timeout=float(search_data.get("compose_timeout", defaults.compose_timeout)),
        random_seed=search_data.get("random_seed"),
        name_lookup=search_data.get("name_lookup", defaults.name_lookup),
        name_lookup_limit=search_data.get("name_lookup_limit", defaults.name_lookup_limit),
    )


def _parse_resume_config(data: dict) -> ResumeConfig:
    """Parse resume section from config dict"""
    resume_data = data.get("resume", {})
    return ResumeConfig(
        enabled=resume_data.get("enabled", True),
        max_resumes=resume_data.get("max_resumes", 2),
        timeout=float(resume_data.get("timeout", 10.0)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8090),
    )


def load_config() -> StuntbaseConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.stuntbase/config.json)
    3. Default values
    """
    config = StuntbaseConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.store = _parse_store_config(data)
            config.search = _parse_search_config(data)
            config.resume = _parse_resume_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # LLM env var overrides (track env-sourced keys so they are never saved)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "STUNTBASE_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("SUPABASE_URL"):
        config.store.url = os.getenv("SUPABASE_URL")
    if os.getenv("SUPABASE_KEY"):
        config.store.api_key = os.getenv("SUPABASE_KEY")
        config._env_sourced_keys.add("store_api_key")

    if os.getenv("STUNTBASE_PORT"):
        config.server.port = int(os.getenv("STUNTBASE_PORT"))
    if os.getenv("STUNTBASE_RANDOM_SEED"):
        config.search.random_seed = int(os.getenv("STUNTBASE_RANDOM_SEED"))

    return config


def save_config(config: StuntbaseConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
    }
    for key in ("anthropic_api_key", "openai_api_key", "google_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "store": {
            "url": config.store.url,
            "api_key": "" if "store_api_key" in env_sourced else config.store.api_key,
            "table": config.store.table,
            "timeout": config.store.timeout,
        },
        "search": {
            "result_limit": config.search.result_limit,
            "broad_result_limit": config.search.broad_result_limit,
            "fallback_limit": config.search.fallback_limit,
            "height_tolerance": config.search.height_tolerance,
            "weight_tolerance": config.search.weight_tolerance,
            "history_window": config.search.history_window,
            "dossier_limit": config.search.dossier_limit,
            "fallback_profile_count": config.search.fallback_profile_count,
            "interpret_timeout": config.search.interpret_timeout,
            "compose_timeout": config.search.compose_timeout,
            "random_seed": config.search.random_seed,
        },
        "resume": {
            "enabled": config.resume.enabled,
            "max_resumes": config.resume.max_resumes,
            "timeout": config.resume.timeout,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
