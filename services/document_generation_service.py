"""
Document generation pipeline service.

Template -> merged profile -> candidate scenarios -> ranked scenarios ->
narrative sections -> assembled document, run as one bounded asyncio unit.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union, Mapping

from adapters.openai_adapter import BaseAIAdapter
from entities.company_profile import CompanySecurityProfile, MergedProfile
from entities.document import Document, DocumentType, requires_scenarios
from entities.generation_config import GenerationConfig, InferenceMethod
from entities.risk_scenario import RiskScenario
from repositories.base import BaseTemplateRepository
from repositories.security_template_repository import create_template_repository
from services.profile_merger import ProfileMerger, create_profile_merger
from services.scenario_generator import ScenarioGenerator, create_scenario_generator
from services.scenario_ranker import ScenarioRanker, create_scenario_ranker
from services.inference_provider import InferenceProvider
from services.external_inference import create_external_inference
from services.fallback_inference import create_fallback_inference
from services.document_assembler import DocumentAssembler, create_document_assembler
from common.exceptions import (
    BaseComplianceException,
    BusinessLogicException,
    InferenceUnavailableException,
    ValidationException,
)
from common.validation import parse_model
from common.logging import (
    GenerationContextLogger,
    get_logger,
    log_business_event,
    log_error,
    log_performance,
)
from config.config import Settings, settings as default_settings

logger = get_logger("document_generation_service")

ProfileInput = Union[CompanySecurityProfile, Mapping[str, Any]]
ConfigInput = Union[GenerationConfig, Mapping[str, Any]]


@dataclass
class GenerationBatchResult:
    """Outcome of a multi-type generation request."""
    documents: Dict[DocumentType, Document] = field(default_factory=dict)
    errors: Dict[DocumentType, BaseComplianceException] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def error_summary(self) -> Dict[str, Dict[str, Any]]:
        return {
            document_type.value: {
                "error_code": error.error_code,
                "status_code": error.status_code,
                "detail": error.detail,
            }
            for document_type, error in self.errors.items()
        }


def _parse_document_type(document_type: Any) -> DocumentType:
    try:
        return DocumentType(document_type)
    except ValueError:
        raise ValidationException(
            detail=f"Unsupported document type: {document_type}",
            field="document_type",
            value=document_type,
            context={"allowed": [t.value for t in DocumentType]}
        )


class DocumentGenerationService:
    """
    Orchestrates one generation request. Stateless between calls: the merged
    profile and the scenario set are recomputed for every document.
    """

    def __init__(
        self,
        template_repository: BaseTemplateRepository,
        external_inference: InferenceProvider,
        fallback_inference: InferenceProvider,
        profile_merger: Optional[ProfileMerger] = None,
        scenario_generator: Optional[ScenarioGenerator] = None,
        scenario_ranker: Optional[ScenarioRanker] = None,
        assembler: Optional[DocumentAssembler] = None,
        generation_timeout_seconds: float = 120.0,
    ):
        self.template_repository = template_repository
        self.profile_merger = profile_merger or create_profile_merger()
        self.scenario_generator = scenario_generator or create_scenario_generator()
        self.scenario_ranker = scenario_ranker or create_scenario_ranker()
        self.assembler = assembler or create_document_assembler()
        self.fallback_inference = fallback_inference
        self.providers: Dict[InferenceMethod, InferenceProvider] = {
            InferenceMethod.EXTERNAL: external_inference,
            InferenceMethod.FALLBACK: fallback_inference,
        }
        self.generation_timeout_seconds = generation_timeout_seconds

    async def generate_document(
        self,
        company_profile: ProfileInput,
        config: ConfigInput,
        document_type: Union[DocumentType, str],
    ) -> Document:
        """
        Generate one document for a company.

        Raises:
            ValidationException: malformed profile, config or document type
            ResourceNotFoundException: no template and no default template
            InsufficientDataException: risk assessment without risk inputs
            InferenceUnavailableException: external inference failed or the
                pipeline exceeded its time budget
            DocumentAssemblyException: synthesized sections violate the schema
        """
        profile = parse_model(CompanySecurityProfile, company_profile, "company_profile")
        config = parse_model(GenerationConfig, config, "config")
        document_type = _parse_document_type(document_type)
        return await self._generate(profile, config, document_type)

    async def generate_documents(
        self,
        company_profile: ProfileInput,
        config: ConfigInput,
        document_types: Sequence[Union[DocumentType, str]],
    ) -> GenerationBatchResult:
        """Generate several document types concurrently, collecting per-type errors."""
        profile = parse_model(CompanySecurityProfile, company_profile, "company_profile")
        config = parse_model(GenerationConfig, config, "config")

        types: List[DocumentType] = []
        for value in document_types or []:
            document_type = _parse_document_type(value)
            if document_type not in types:
                types.append(document_type)
        if not types:
            raise ValidationException(
                detail="At least one document type is required",
                field="document_types",
                value=document_types
            )

        results = await asyncio.gather(
            *(self._generate(profile, config, document_type) for document_type in types),
            return_exceptions=True
        )

        batch = GenerationBatchResult()
        for document_type, result in zip(types, results):
            if isinstance(result, Document):
                batch.documents[document_type] = result
            elif isinstance(result, BaseComplianceException):
                batch.errors[document_type] = result
            else:
                raise result

        log_business_event(
            event_type="document_batch_generated",
            entity_type="company",
            entity_id=profile.company_id,
            action="generate",
            details={
                "requested": [t.value for t in types],
                "generated": [t.value for t in batch.documents],
                "failed": batch.error_summary(),
            }
        )
        return batch

    async def regenerate_document(
        self,
        previous: Union[Document, Mapping[str, Any]],
        company_profile: ProfileInput,
        config: ConfigInput,
    ) -> Document:
        """
        Produce the next version of a previously generated document.

        The new document records whether its scenario set differs from the
        previous version's.
        """
        previous = parse_model(Document, previous, "previous")
        profile = parse_model(CompanySecurityProfile, company_profile, "company_profile")
        config = parse_model(GenerationConfig, config, "config")

        if previous.company_id != profile.company_id:
            raise ValidationException(
                detail="Cannot regenerate a document for a different company",
                field="company_id",
                value=profile.company_id,
                context={"previous_company_id": previous.company_id, "company_id": profile.company_id}
            )

        document = await self._generate(
            profile,
            config,
            previous.type,
            version=previous.version + 1,
            metadata={"previous_document_id": previous.id, "previous_version": previous.version},
        )

        scenario_set_changed = document.scenario_triples() != previous.scenario_triples()
        document.metadata = {**document.metadata, "scenario_set_changed": scenario_set_changed}

        log_business_event(
            event_type="document_regenerated",
            entity_type="document",
            entity_id=document.id,
            action="regenerate",
            details={
                "document_type": document.type.value,
                "previous_document_id": previous.id,
                "version": document.version,
                "scenario_set_changed": scenario_set_changed,
            }
        )
        if scenario_set_changed:
            logger.info(
                f"Scenario set changed between versions {previous.version} and {document.version}",
                extra={"document_id": document.id}
            )
        return document

    async def preview_scenarios(
        self,
        company_profile: ProfileInput,
        config: ConfigInput,
    ) -> List[RiskScenario]:
        """Ranked scenario set for a company, without narrative synthesis."""
        profile = parse_model(CompanySecurityProfile, company_profile, "company_profile")
        config = parse_model(GenerationConfig, config, "config")

        with GenerationContextLogger(company_id=profile.company_id):
            _, scenarios = await self._prepare_scenarios(profile, config, require_scenarios=False)
        return scenarios

    async def _generate(
        self,
        profile: CompanySecurityProfile,
        config: GenerationConfig,
        document_type: DocumentType,
        version: int = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Document:
        with GenerationContextLogger(company_id=profile.company_id, document_type=document_type.value):
            start_time = time.time()
            try:
                document = await asyncio.wait_for(
                    self._run_pipeline(profile, config, document_type, version, metadata),
                    timeout=self.generation_timeout_seconds
                )
            except asyncio.TimeoutError:
                self._log_generation(start_time, document_type, config, success=False, error="timeout")
                raise InferenceUnavailableException(
                    detail=f"Document generation exceeded {self.generation_timeout_seconds}s",
                    attempts=0,
                    last_error="generation_timeout"
                )
            except BaseComplianceException as e:
                self._log_generation(start_time, document_type, config, success=False, error=e.error_code)
                raise
            except Exception as e:
                self._log_generation(start_time, document_type, config, success=False, error=str(e))
                log_error(e, {"company_id": profile.company_id, "document_type": document_type.value})
                raise BusinessLogicException(
                    detail="Document generation failed",
                    error_code="GENERATION_FAILED",
                    status_code=500,
                    context={"document_type": document_type.value, "error": str(e)}
                )

            self._log_generation(start_time, document_type, config, success=True)
            return document

    async def _run_pipeline(
        self,
        profile: CompanySecurityProfile,
        config: GenerationConfig,
        document_type: DocumentType,
        version: int,
        metadata: Optional[Dict[str, Any]],
    ) -> Document:
        merged, scenarios = await self._prepare_scenarios(
            profile, config, require_scenarios=requires_scenarios(document_type)
        )

        document_metadata: Dict[str, Any] = {
            "template_industry": merged.template_industry,
            "requested_inference_method": config.inference_method.value,
            "max_risk_scenarios": config.max_risk_scenarios,
            **(metadata or {}),
        }

        provider = self.providers[config.inference_method]
        try:
            sections = await provider.synthesize(document_type, merged, tuple(scenarios))
            method_used = provider.method
        except InferenceUnavailableException as e:
            if provider.method != InferenceMethod.EXTERNAL or not config.fallback_on_inference_failure:
                raise
            sections, method_used = await self._switch_to_fallback(
                e, document_type, merged, scenarios, document_metadata
            )

        return self.assembler.assemble(
            document_type=document_type,
            scenarios=scenarios,
            sections=sections,
            company_id=profile.company_id,
            version=version,
            inference_method=InferenceMethod(method_used).value,
            metadata=document_metadata,
        )

    async def _prepare_scenarios(
        self,
        profile: CompanySecurityProfile,
        config: GenerationConfig,
        require_scenarios: bool,
    ) -> Tuple[MergedProfile, List[RiskScenario]]:
        template = await self.template_repository.resolve_template(profile.industry)
        merged = self.profile_merger.merge(template, profile)
        candidates = self.scenario_generator.generate(merged)
        scenarios = self.scenario_ranker.rank(
            candidates,
            config.max_risk_scenarios,
            require_scenarios=require_scenarios,
        )
        return merged, scenarios

    async def _switch_to_fallback(
        self,
        error: InferenceUnavailableException,
        document_type: DocumentType,
        merged: MergedProfile,
        scenarios: Sequence[RiskScenario],
        document_metadata: Dict[str, Any],
    ) -> Tuple[Dict[str, str], InferenceMethod]:
        reason = error.last_error or str(error.detail)
        log_business_event(
            event_type="inference_fallback",
            entity_type="company",
            entity_id=merged.company_id,
            action="switch_to_fallback",
            details={
                "document_type": document_type.value,
                "attempts": error.attempts,
                "reason": reason,
            }
        )
        document_metadata["fallback_reason"] = reason
        sections = await self.fallback_inference.synthesize(document_type, merged, tuple(scenarios))
        return sections, self.fallback_inference.method

    def _log_generation(
        self,
        start_time: float,
        document_type: DocumentType,
        config: GenerationConfig,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        extra: Dict[str, Any] = {
            "inference_method": config.inference_method.value,
            "max_risk_scenarios": config.max_risk_scenarios,
        }
        if error:
            extra["error"] = error
        log_performance(
            operation=f"generate_{document_type.value}",
            duration_ms=(time.time() - start_time) * 1000,
            success=success,
            **extra
        )


def create_document_generation_service(
    template_repository: Optional[BaseTemplateRepository] = None,
    ai_adapter: Optional[BaseAIAdapter] = None,
    config: Optional[Settings] = None,
) -> DocumentGenerationService:
    """Factory function to create DocumentGenerationService instance."""
    config = config or default_settings
    return DocumentGenerationService(
        template_repository=template_repository or create_template_repository(),
        external_inference=create_external_inference(ai_adapter, config),
        fallback_inference=create_fallback_inference(),
        generation_timeout_seconds=config.generation_timeout_seconds,
    )
