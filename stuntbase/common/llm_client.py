"""
Provider-agnostic LLM client for the search pipeline.

One `generate()` call shape over Anthropic, OpenAI and Google Gemini. The
interpreter and resume analyzer call it in JSON mode, the composer for prose.
Provider SDKs are imported lazily so only the configured one must be installed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from .errors import GenerationFailure

if TYPE_CHECKING:
    from .config import LLMConfig

logger = logging.getLogger("stuntbase.common.llm_client")

SUPPORTED_PROVIDERS = ("anthropic", "openai", "google")


class LLMClient:
    """Text generation over whichever provider is configured."""

    def __init__(
        self,
        provider: str = "openai",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "openai").lower()
        self.model = model
        self._client: Any = None
        self._gemini_models: Dict[str, Any] = {}

        keys = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }
        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = keys[self.provider]
        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        connect = {
            "anthropic": self._connect_anthropic,
            "openai": self._connect_openai,
            "google": self._connect_google,
        }[self.provider]
        try:
            self._client = connect(api_key)
        except ImportError as e:
            logger.warning("SDK for %s is not installed: %s", self.provider, e)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @classmethod
    def from_config(cls, config: "LLMConfig") -> "LLMClient":
        """Build a client for the configured provider and its model."""
        provider = (config.provider or "openai").lower()
        models = {
            "anthropic": config.anthropic_model,
            "openai": config.openai_model,
            "google": config.google_model,
        }
        return cls(
            provider=provider,
            model=models.get(provider, ""),
            anthropic_api_key=config.anthropic_api_key or None,
            openai_api_key=config.openai_api_key or None,
            google_api_key=config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    @staticmethod
    def _connect_anthropic(api_key: str) -> Any:
        import anthropic

        return anthropic.Anthropic(api_key=api_key)

    @staticmethod
    def _connect_openai(api_key: str) -> Any:
        from openai import OpenAI

        return OpenAI(api_key=api_key)

    @staticmethod
    def _connect_google(api_key: str) -> Any:
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        # The module itself; models are built per system prompt
        return genai

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
        json_mode: bool = False,
    ) -> str:
        """Generate text for ``prompt``.

        ``json_mode`` asks the provider for a strict JSON object where it
        supports one (OpenAI, Gemini). Anthropic relies on the prompt alone.

        Raises:
            GenerationFailure: if the client is not available.
        """
        if not self.is_available:
            raise GenerationFailure("LLM client is not available")

        if self.provider == "anthropic":
            return self._generate_anthropic(prompt, system, max_tokens, timeout)
        if self.provider == "openai":
            return self._generate_openai(prompt, system, max_tokens, timeout, json_mode)
        if self.provider == "google":
            return self._generate_google(prompt, system, max_tokens, timeout, json_mode)
        raise GenerationFailure(f"Unsupported LLM provider: {self.provider}")

    def _generate_anthropic(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
            **extra,
        )
        return response.content[0].text.strip()

    def _generate_openai(
        self, prompt: str, system: Optional[str], max_tokens: int, timeout: float, json_mode: bool
    ) -> str:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        extra = {"response_format": {"type": "json_object"}} if json_mode else {}
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=messages,
            timeout=timeout,
            **extra,
        )
        return (response.choices[0].message.content or "").strip()

    def _generate_google(
        self, prompt: str, system: Optional[str], max_tokens: int, timeout: float, json_mode: bool
    ) -> str:
        key = system or ""
        if key not in self._gemini_models:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            self._gemini_models[key] = self._client.GenerativeModel(**options)

        generation_config: Dict[str, Any] = {"max_output_tokens": max_tokens}
        if json_mode:
            generation_config["response_mime_type"] = "application/json"
        response = self._gemini_models[key].generate_content(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": timeout},
        )
        return response.text.strip()
