# services/llm_service.py
import logging
from typing import Dict, Optional

import httpx

from config import Settings, settings
from core.domain import ConfigurationError, ValidationError
from core.interfaces import ILLMProvider
from infrastructure.llm_providers import (
    AnthropicProvider, GoogleProvider, HTTPStreamingProvider, OpenAIProvider
)

logger = logging.getLogger(settings.LOGGER_NAME)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "google")


class LLMService:
    """Resolves a provider name to a configured streaming adapter."""

    def __init__(self, config: Settings = settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            config: Settings holding credentials, base URLs and timeouts.
            transport: Optional httpx transport shared by all adapters (tests
                pass an httpx.MockTransport here).
        """
        self.config = config
        self.transport = transport

    def credential_for(self, provider: str) -> Optional[str]:
        return getattr(self.config, f"{provider.upper()}_API_KEY", None) or None

    def configured_providers(self) -> Dict[str, bool]:
        return {name: self.credential_for(name) is not None for name in SUPPORTED_PROVIDERS}

    @staticmethod
    def normalize(provider: Optional[str]) -> str:
        """Lowercased provider name; ValidationError when unsupported."""
        name = (provider or "").lower()
        if name not in SUPPORTED_PROVIDERS:
            raise ValidationError(
                f"Unknown provider: '{provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        return name

    def ensure_ready(self, provider: str) -> str:
        """
        Check the provider is known and has a credential.

        Raises:
            ValidationError: unknown provider name
            ConfigurationError: no API key configured for the provider
        """
        name = self.normalize(provider)
        if self.credential_for(name) is None:
            logger.error(f"No API key configured for provider '{name}'")
            raise ConfigurationError(f"{name.upper()}_API_KEY is not configured")
        return name

    def create_adapter(self, provider: str) -> ILLMProvider:
        name = self.ensure_ready(provider)
        api_key = self.credential_for(name)
        timeout = httpx.Timeout(
            self.config.UPSTREAM_READ_TIMEOUT, connect=self.config.UPSTREAM_CONNECT_TIMEOUT
        )

        adapter: HTTPStreamingProvider
        if name == "openai":
            adapter = OpenAIProvider(
                api_key, self.config.OPENAI_BASE_URL, timeout=timeout, transport=self.transport
            )
        elif name == "anthropic":
            adapter = AnthropicProvider(
                api_key,
                self.config.ANTHROPIC_BASE_URL,
                api_version=self.config.ANTHROPIC_VERSION,
                timeout=timeout,
                transport=self.transport,
            )
        else:
            adapter = GoogleProvider(
                api_key, self.config.GOOGLE_BASE_URL, timeout=timeout, transport=self.transport
            )
        return adapter
