"""
OpenAI API adapter for external service integration.
This handles all direct communication with the OpenAI chat completions API.
"""

import asyncio
import json
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from common.exceptions import (
    ExternalServiceException,
    ValidationException,
    BusinessLogicException
)
from common.logging import get_logger, log_performance

logger = get_logger("openai_adapter")

STRUCTURED_TOOL_NAME = "write_document_sections"


@dataclass
class AIRequest:
    """Request for a structured narrative generation."""
    prompt: str
    max_tokens: Optional[int] = 3000
    temperature: Optional[float] = 0.2
    model: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


@dataclass
class AIResponse:
    """Response from AI operations."""
    content: str
    model_used: str
    tokens_used: int
    response_time_ms: float
    request_id: str
    structured_data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class BaseAIAdapter(ABC):
    """Abstract base class for AI service adapters."""

    @abstractmethod
    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        """Generate a JSON object matching `schema`."""
        pass

    @abstractmethod
    def is_healthy(self) -> bool:
        """Check if the AI service is healthy."""
        pass


def build_system_message(context: Optional[Dict[str, Any]]) -> str:
    """Build system message from request context."""
    if not context:
        return ""

    system_parts = []

    if context.get("role"):
        system_parts.append(f"You are a {context['role']}.")

    if context.get("document_title"):
        system_parts.append(f"You are writing the narrative of an {context['document_title']}.")

    if context.get("instructions"):
        system_parts.append(context["instructions"])

    return " ".join(system_parts)


class OpenAIAdapter(BaseAIAdapter):
    """
    OpenAI adapter returning structured output through a forced tool call.
    """

    def __init__(self, api_key: str, default_model: str = "gpt-4o-mini", timeout: int = 60):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self._client = None
        self._initialize_client()

    def _initialize_client(self):
        """Initialize OpenAI client."""
        try:
            import openai
            self._client = openai.AsyncOpenAI(api_key=self.api_key, max_retries=0)
            logger.info("OpenAI client initialized successfully")
        except ImportError:
            logger.error("OpenAI library not installed. Install with: pip install openai")
            raise BusinessLogicException(
                detail="OpenAI library not available",
                error_code="DEPENDENCY_MISSING"
            )
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI client: {e}")
            raise ExternalServiceException(
                detail="Failed to initialize OpenAI client",
                service_name="OpenAI",
                context={"error": str(e)}
            )

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        """
        Generate a structured response using a single forced tool call.

        Retries are owned by the caller, so the client is created with
        max_retries=0 and every failure surfaces as ExternalServiceException.
        """
        start_time = time.time()
        request_id = str(uuid.uuid4())

        if not request.prompt or not request.prompt.strip():
            raise ValidationException(
                detail="Prompt cannot be empty",
                field="prompt",
                value=request.prompt
            )

        model = request.model or self.default_model
        messages = [{"role": "user", "content": request.prompt}]
        system_message = build_system_message(request.context)
        if system_message:
            messages.insert(0, {"role": "system", "content": system_message})

        tool = {
            "type": "function",
            "function": {
                "name": STRUCTURED_TOOL_NAME,
                "description": "Return every requested document section as plain text",
                "parameters": schema,
            },
        }

        try:
            logger.debug(f"Making structured OpenAI API call with model: {model}")

            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=model,
                    messages=messages,
                    tools=[tool],
                    tool_choice={"type": "function", "function": {"name": STRUCTURED_TOOL_NAME}},
                    max_tokens=request.max_tokens or 3000,
                    temperature=request.temperature if request.temperature is not None else 0.2
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self._log_failure(start_time, "timeout")
            raise ExternalServiceException(
                detail="OpenAI API request timed out",
                service_name="OpenAI",
                context={"timeout_seconds": self.timeout}
            )
        except Exception as e:
            self._log_failure(start_time, str(e))
            logger.error(f"OpenAI structured API call failed: {e}", exc_info=True)
            raise self._map_error(e)

        if not getattr(response, "choices", None):
            self._log_failure(start_time, "no_choices")
            raise ExternalServiceException(
                detail="OpenAI returned no choices",
                service_name="OpenAI",
                error_code="MALFORMED_RESPONSE"
            )

        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None) or []
        if not tool_calls:
            self._log_failure(start_time, "no_tool_call")
            raise ExternalServiceException(
                detail="OpenAI did not return structured response",
                service_name="OpenAI",
                error_code="MALFORMED_RESPONSE",
                context={"finish_reason": response.choices[0].finish_reason}
            )

        arguments = tool_calls[0].function.arguments
        try:
            structured_content = json.loads(arguments)
        except (TypeError, json.JSONDecodeError) as e:
            self._log_failure(start_time, "invalid_json")
            raise ExternalServiceException(
                detail="OpenAI returned invalid JSON arguments",
                service_name="OpenAI",
                error_code="MALFORMED_RESPONSE",
                context={"error": str(e)}
            )

        tokens_used = response.usage.total_tokens if response.usage else 0
        response_time_ms = (time.time() - start_time) * 1000

        log_performance(
            operation="openai_structured_generation",
            duration_ms=response_time_ms,
            success=True,
            token_count=tokens_used
        )
        logger.info(f"OpenAI structured generation completed: {tokens_used} tokens, {response_time_ms:.0f}ms")

        return AIResponse(
            content=arguments,
            model_used=response.model,
            tokens_used=tokens_used,
            response_time_ms=response_time_ms,
            request_id=request_id,
            structured_data=structured_content if isinstance(structured_content, dict) else {},
            metadata={
                "finish_reason": response.choices[0].finish_reason,
                "prompt_tokens": response.usage.prompt_tokens if response.usage else 0,
                "completion_tokens": response.usage.completion_tokens if response.usage else 0,
            },
        )

    def _log_failure(self, start_time: float, error: str) -> None:
        log_performance(
            operation="openai_structured_generation",
            duration_ms=(time.time() - start_time) * 1000,
            success=False,
            error=error
        )

    def _map_error(self, error: Exception) -> ExternalServiceException:
        # Map common OpenAI errors
        message = str(error).lower()
        if "rate_limit" in message or "rate limit" in message:
            return ExternalServiceException(
                detail="OpenAI API rate limit exceeded",
                service_name="OpenAI",
                context={"error": "rate_limit"}
            )
        if "insufficient_quota" in message:
            return ExternalServiceException(
                detail="OpenAI API quota exceeded",
                service_name="OpenAI",
                context={"error": "quota_exceeded"}
            )
        if "invalid_api_key" in message:
            return ExternalServiceException(
                detail="Invalid OpenAI API key",
                service_name="OpenAI",
                context={"error": "authentication_failed"}
            )
        return ExternalServiceException(
            detail="OpenAI structured API request failed",
            service_name="OpenAI",
            context={"error": str(error)}
        )

    def is_healthy(self) -> bool:
        """Check if OpenAI service is healthy."""
        return self._client is not None


class MockAIAdapter(BaseAIAdapter):
    """
    Deterministic adapter for development and tests. Fills every string
    property of the schema with a short narrative built from the request
    context.
    """

    def __init__(self, delay_ms: int = 0):
        self.delay_ms = delay_ms
        self.calls = 0
        logger.info("Mock AI adapter initialized")

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        start_time = time.time()
        self.calls += 1

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        structured = self._generate_sections(request.context or {}, schema)
        content = json.dumps(structured)

        return AIResponse(
            content=content,
            model_used="mock-gpt-4o-mini",
            tokens_used=len(content.split()) * 2,  # Rough token estimate
            response_time_ms=(time.time() - start_time) * 1000,
            request_id=str(uuid.uuid4()),
            structured_data=structured,
            metadata={"mock": True, "delay_ms": self.delay_ms},
        )

    def _generate_sections(self, context: Dict[str, Any], schema: Dict[str, Any]) -> Dict[str, Any]:
        company = context.get("company_name", "the organization")
        document_title = context.get("document_title", "document")
        scenario_count = context.get("scenario_count", 0)

        sections = {}
        for key, field_schema in schema.get("properties", {}).items():
            heading = field_schema.get("title") or key.replace("_", " ").capitalize()
            if field_schema.get("type", "string") != "string":
                continue
            sections[key] = (
                f"{heading} of the {document_title} for {company}. "
                f"This section was drafted from the merged security profile "
                f"and {scenario_count} ranked risk scenarios."
            )
        return sections

    def is_healthy(self) -> bool:
        """Mock adapter is always healthy."""
        return True
