"""
Dependency injection setup for repositories and services.
"""

from functools import lru_cache
from typing import Annotated, Optional
from fastapi import Depends

from adapters.openai_adapter import BaseAIAdapter, OpenAIAdapter, MockAIAdapter
from repositories.base import BaseTemplateRepository
from repositories.security_template_repository import create_template_repository
from services.external_inference import ExternalInference, create_external_inference
from services.fallback_inference import FallbackInference, create_fallback_inference
from services.document_generation_service import DocumentGenerationService
from services.document_renderer import DocumentRenderer, create_document_renderer
from common.logging import get_logger
from config.config import settings

logger = get_logger("dependencies")


@lru_cache()
def get_template_repository() -> BaseTemplateRepository:
    """Get singleton template catalog."""
    return create_template_repository()


@lru_cache()
def get_ai_adapter() -> Optional[BaseAIAdapter]:
    """
    Get singleton AI adapter.

    Returns None when no provider is configured; external inference then
    reports itself unavailable instead of silently degrading.
    """
    if settings.has_openai_credentials():
        return OpenAIAdapter(
            api_key=settings.openai_api_key,
            default_model=settings.openai_model,
            timeout=settings.openai_timeout_seconds
        )
    if settings.use_mock_ai:
        return MockAIAdapter()
    logger.warning("No OpenAI API key configured; external inference is unavailable")
    return None


@lru_cache()
def get_external_inference() -> ExternalInference:
    """Get singleton external inference provider."""
    return create_external_inference(get_ai_adapter(), settings)


@lru_cache()
def get_fallback_inference() -> FallbackInference:
    """Get singleton fallback inference provider."""
    return create_fallback_inference()


@lru_cache()
def get_document_generation_service() -> DocumentGenerationService:
    """Get singleton document generation service."""
    return DocumentGenerationService(
        template_repository=get_template_repository(),
        external_inference=get_external_inference(),
        fallback_inference=get_fallback_inference(),
        generation_timeout_seconds=settings.generation_timeout_seconds,
    )


@lru_cache()
def get_document_renderer() -> DocumentRenderer:
    """Get singleton document renderer."""
    return create_document_renderer()


TemplateRepositoryDep = Annotated[BaseTemplateRepository, Depends(get_template_repository)]
DocumentGenerationServiceDep = Annotated[DocumentGenerationService, Depends(get_document_generation_service)]
DocumentRendererDep = Annotated[DocumentRenderer, Depends(get_document_renderer)]
