"""Business logic services package with public service helpers."""

from .api_key_protector import (
    ApiKeyDecryptionError,
    ApiKeyProtector,
    get_protector,
    mask_api_key,
)
from .ai_completion_client import AiCompletionClient, AiCompletionResult
from .api_provider_service import ProviderRuntime, get_runtime_provider

__all__ = [
    "ApiKeyDecryptionError",
    "ApiKeyProtector",
    "get_protector",
    "mask_api_key",
    "AiCompletionClient",
    "AiCompletionResult",
    "ProviderRuntime",
    "get_runtime_provider",
]
