"""
Deterministic AI adapter doubles for inference and pipeline tests.

No network access. Each double counts its calls so tests can assert on the
retry behaviour of ExternalInference.
"""

import asyncio
from typing import Any, Dict

from adapters.openai_adapter import AIRequest, AIResponse, BaseAIAdapter, MockAIAdapter
from common.exceptions import ExternalServiceException


def _response(structured: Dict[str, Any]) -> AIResponse:
    return AIResponse(
        content="",
        model_used="stub",
        tokens_used=0,
        response_time_ms=0.0,
        request_id="stub-request",
        structured_data=structured,
    )


class FailingAdapter(BaseAIAdapter):
    """Always raises ExternalServiceException."""

    def __init__(self):
        self.calls = 0

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        self.calls += 1
        raise ExternalServiceException(
            detail="provider down",
            service_name="stub",
        )

    def is_healthy(self) -> bool:
        return False


class FlakyAdapter(BaseAIAdapter):
    """Fails the first `failures` calls, then answers like MockAIAdapter."""

    def __init__(self, failures: int = 1):
        self.failures = failures
        self.calls = 0
        self._delegate = MockAIAdapter()

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        self.calls += 1
        if self.calls <= self.failures:
            raise ExternalServiceException(detail="transient failure", service_name="stub")
        return await self._delegate.generate_structured_response(request, schema)

    def is_healthy(self) -> bool:
        return True


class MalformedAdapter(BaseAIAdapter):
    """Answers with the first schema property missing."""

    def __init__(self):
        self.calls = 0

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        self.calls += 1
        keys = list(schema["properties"])
        return _response({key: f"text for {key}" for key in keys[1:]})

    def is_healthy(self) -> bool:
        return True


class ExtraSectionAdapter(BaseAIAdapter):
    """Answers with every section plus one the schema does not define."""

    def __init__(self):
        self.calls = 0

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        self.calls += 1
        structured = {key: f"  text for {key}  " for key in schema["properties"]}
        structured["appendix"] = "not requested"
        return _response(structured)

    def is_healthy(self) -> bool:
        return True


class SlowAdapter(BaseAIAdapter):
    """Sleeps for `delay_seconds` before answering; records cancellation."""

    def __init__(self, delay_seconds: float = 10.0):
        self.delay_seconds = delay_seconds
        self.calls = 0
        self.cancelled = False
        self._delegate = MockAIAdapter()

    async def generate_structured_response(self, request: AIRequest, schema: Dict[str, Any]) -> AIResponse:
        self.calls += 1
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return await self._delegate.generate_structured_response(request, schema)

    def is_healthy(self) -> bool:
        return True
