# src/llm/client_factory.py - v3
"""Factory: instantiate LLM client from provider name."""

from __future__ import annotations

import importlib
import logging

from docsift.config.settings import Settings
from docsift.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "google": "docsift.llm.adapters.google_adapter.GoogleAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(settings: Settings, **kwargs: object) -> BaseLLMClient:
    """Instantiate the adapter for ``settings.ai_provider``.

    Raises:
        UnsupportedProviderError: If the provider is not registered.
        ConfigurationError: If the adapter rejects its configuration.
    """
    provider = settings.ai_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported AI provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs.setdefault("model", settings.ai_model)
    init_kwargs.setdefault("api_key", settings.ai_api_key)
    init_kwargs.setdefault("temperature", settings.ai_temperature)
    init_kwargs.setdefault("max_output_tokens", settings.ai_max_output_tokens)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, settings.ai_model)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered AI provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
