"""
External language-model inference provider.

One batched structured call per document: the prompt carries the bounded
profile and scenario data, and the response schema requires one string
property per section key. Each attempt has its own timeout and a transient
failure is retried exactly once before the provider gives up.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

from adapters.openai_adapter import AIRequest, BaseAIAdapter
from entities.company_profile import MergedProfile
from entities.document import DocumentType, DOCUMENT_TITLES, SECTION_TITLES, section_keys
from entities.generation_config import InferenceMethod
from entities.risk_scenario import RiskScenario
from services.inference_provider import section_problems
from common.exceptions import ExternalServiceException, InferenceUnavailableException, ValidationException
from common.logging import get_logger, log_performance
from config.config import Settings, settings as default_settings

logger = get_logger("external_inference")

TRUNCATION_MARKER = "\n[... input truncated ...]"

SYSTEM_INSTRUCTIONS = (
    "Write concise, professional ISO/IEC 27001 documentation in English. "
    "Use only the organization data and risk scenarios provided. Do not invent, "
    "remove or re-score risk scenarios. Return plain text for every section."
)


class MalformedResponseError(Exception):
    """The provider answered, but not with the required section set."""


def build_section_schema(document_type: DocumentType) -> Dict[str, Any]:
    """JSON schema with one required string property per section key."""
    keys = section_keys(document_type)
    return {
        "type": "object",
        "properties": {
            key: {
                "type": "string",
                "title": SECTION_TITLES[key],
                "description": f"Narrative text for the '{SECTION_TITLES[key]}' section",
            }
            for key in keys
        },
        "required": list(keys),
        "additionalProperties": False,
    }


def build_prompt(
    document_type: DocumentType,
    merged_profile: MergedProfile,
    scenarios: Sequence[RiskScenario],
    max_chars: int,
) -> str:
    """
    Build the generation prompt, keeping the data part within `max_chars`.

    The instruction header is never truncated; profile lists and scenario
    lines are cut at the budget with a visible marker.
    """
    keys = section_keys(document_type)
    header = (
        f"Draft the sections of the {DOCUMENT_TITLES[document_type]} for "
        f"{merged_profile.company_name}.\n"
        f"Required sections: {', '.join(keys)}.\n\n"
    )

    lines: List[str] = [
        f"Organization: {merged_profile.company_name}",
        f"Industry: {merged_profile.industry}",
    ]
    if merged_profile.description:
        lines.append(f"Description: {merged_profile.description}")
    if merged_profile.location:
        lines.append(f"Location: {merged_profile.location}")
    if merged_profile.employee_count:
        lines.append(f"Employees: {merged_profile.employee_count}")

    for label, entries in (
        ("Information assets", merged_profile.information_assets),
        ("Threats", merged_profile.threats),
        ("Vulnerabilities", merged_profile.vulnerabilities),
        ("Existing measures", merged_profile.existing_measures),
    ):
        lines.append(f"{label}: {'; '.join(entries) if entries else 'none recorded'}")

    if scenarios:
        lines.append("Ranked risk scenarios:")
        for scenario in scenarios:
            lines.append(
                f"{scenario.scenario_id or '-'} | {scenario.asset} | {scenario.threat} | "
                f"{scenario.vulnerability} | L{scenario.likelihood} I{scenario.impact} "
                f"score {scenario.risk_score} ({scenario.risk_level.value}) | "
                f"measure: {scenario.existing_measure or 'none'}"
            )

    data = "\n".join(lines)
    budget = max(0, max_chars - len(header))
    if len(data) > budget:
        data = data[:max(0, budget - len(TRUNCATION_MARKER))] + TRUNCATION_MARKER

    return header + data


class ExternalInference:
    """Inference provider backed by an AI adapter."""

    method = InferenceMethod.EXTERNAL

    def __init__(
        self,
        adapter: Optional[BaseAIAdapter],
        timeout_seconds: float = 45.0,
        max_retries: int = 1,
        retry_delay_seconds: float = 1.0,
        max_prompt_chars: int = 12000,
        max_tokens: int = 3000,
        temperature: float = 0.2,
        model: Optional[str] = None,
    ):
        self.adapter = adapter
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(0, min(1, max_retries))
        self.retry_delay_seconds = retry_delay_seconds
        self.max_prompt_chars = max_prompt_chars
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.model = model

    async def synthesize(
        self,
        document_type: DocumentType,
        merged_profile: MergedProfile,
        scenarios: Sequence[RiskScenario],
    ) -> Dict[str, str]:
        try:
            document_type = DocumentType(document_type)
        except ValueError:
            raise ValidationException(
                detail=f"Unsupported document type: {document_type}",
                field="document_type",
                value=document_type
            )

        if self.adapter is None:
            raise InferenceUnavailableException(
                detail="No external inference provider is configured",
                attempts=0,
                last_error="not_configured"
            )

        scenarios = tuple(scenarios)
        request = AIRequest(
            prompt=build_prompt(document_type, merged_profile, scenarios, self.max_prompt_chars),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            model=self.model,
            context={
                "role": "information security consultant",
                "document_title": DOCUMENT_TITLES[document_type],
                "instructions": SYSTEM_INSTRUCTIONS,
                "company_name": merged_profile.company_name,
                "scenario_count": len(scenarios),
            },
        )
        schema = build_section_schema(document_type)

        attempts = 1 + self.max_retries
        last_error: Optional[str] = None
        start_time = time.time()

        for attempt in range(1, attempts + 1):
            try:
                response = await asyncio.wait_for(
                    self.adapter.generate_structured_response(request, schema),
                    timeout=self.timeout_seconds
                )
                sections = self._extract_sections(document_type, response.structured_data)

                log_performance(
                    operation="external_inference",
                    duration_ms=(time.time() - start_time) * 1000,
                    success=True,
                    attempts=attempt,
                    document_type=document_type.value
                )
                return sections

            except asyncio.TimeoutError:
                last_error = f"timeout after {self.timeout_seconds}s"
            except ExternalServiceException as e:
                last_error = f"{e.error_code}: {e.detail}"
            except MalformedResponseError as e:
                last_error = f"malformed response: {e}"

            logger.warning(
                f"External inference attempt {attempt}/{attempts} failed: {last_error}",
                extra={"document_type": document_type.value, "attempt": attempt}
            )
            if attempt < attempts:
                await asyncio.sleep(self.retry_delay_seconds)

        log_performance(
            operation="external_inference",
            duration_ms=(time.time() - start_time) * 1000,
            success=False,
            attempts=attempts,
            document_type=document_type.value,
            error=last_error
        )
        raise InferenceUnavailableException(
            detail=f"External inference unavailable after {attempts} attempt(s): {last_error}",
            attempts=attempts,
            last_error=last_error
        )

    def _extract_sections(self, document_type: DocumentType, data: Any) -> Dict[str, str]:
        missing, unexpected = section_problems(document_type, data)
        if missing:
            raise MalformedResponseError(f"missing or empty sections: {', '.join(missing)}")
        if unexpected:
            logger.warning(f"Discarding unexpected sections from provider: {', '.join(unexpected)}")
        return {key: data[key].strip() for key in section_keys(document_type)}


def create_external_inference(
    adapter: Optional[BaseAIAdapter],
    config: Optional[Settings] = None,
) -> ExternalInference:
    """Factory function to create ExternalInference from settings."""
    config = config or default_settings
    return ExternalInference(
        adapter=adapter,
        timeout_seconds=config.inference_timeout_seconds,
        max_retries=config.inference_max_retries,
        retry_delay_seconds=config.inference_retry_delay_seconds,
        max_prompt_chars=config.inference_max_prompt_chars,
        max_tokens=config.inference_max_tokens,
        temperature=config.inference_temperature,
        model=config.openai_model,
    )
