import asyncio

import pytest

from adapters.openai_adapter import MockAIAdapter
from common.exceptions import InferenceUnavailableException, InsufficientDataException, ValidationException
from entities.document import DocumentStatus, DocumentType
from entities.generation_config import GenerationConfig, InferenceMethod
from entities.security_template import SecurityTemplate
from repositories.security_template_repository import InMemoryTemplateRepository

from conftest import make_service
from stub_adapters import FailingAdapter, SlowAdapter


def _empty_repository():
    template = SecurityTemplate(
        industry="bare",
        name="Bare",
        information_assets=["Ledger"],
        threats=["Fire"],
        vulnerabilities=[],
        existing_measures=[],
        is_default=True,
    )
    return InMemoryTemplateRepository([template], include_builtin=False)


def test_finance_example_end_to_end(finance_profile):
    service = make_service()
    config = GenerationConfig(inference_method="fallback", max_risk_scenarios=1)

    document = asyncio.run(service.generate_document(finance_profile, config, "risk_assessment"))

    assert document.status == DocumentStatus.GENERATED
    assert [s.asset for s in document.scenarios] == ["Customer DB"]
    assert document.inference_method == "fallback"
    assert document.metadata["template_industry"] == "finance"


def test_scenarios_are_identical_across_inference_methods(finance_profile, fallback_config, external_config):
    service = make_service(adapter=MockAIAdapter())

    fallback_doc = asyncio.run(service.generate_document(finance_profile, fallback_config, DocumentType.RISK_ASSESSMENT))
    external_doc = asyncio.run(service.generate_document(finance_profile, external_config, DocumentType.RISK_ASSESSMENT))

    assert fallback_doc.scenarios == external_doc.scenarios
    assert set(fallback_doc.sections) == set(external_doc.sections)
    assert external_doc.inference_method == "external"
    assert fallback_doc.sections != external_doc.sections


def test_identical_inputs_yield_identical_scenarios(finance_profile, fallback_config):
    service = make_service()
    first = asyncio.run(service.preview_scenarios(finance_profile, fallback_config))
    second = asyncio.run(service.preview_scenarios(finance_profile, fallback_config))

    assert first == second
    assert [s.scenario_id for s in first] == ["R01", "R02"]


def test_cap_applies_to_default_template():
    service = make_service()
    profile = {"company_id": "c-9", "company_name": "Corner Shop", "industry": "retail"}
    config = {"inference_method": "fallback", "max_risk_scenarios": 3}

    document = asyncio.run(service.generate_document(profile, config, "risk_assessment"))

    assert len(document.scenarios) == 3
    assert document.metadata["template_industry"] == "general"
    scores = [s.risk_score for s in document.scenarios]
    assert scores == sorted(scores, reverse=True)


def test_external_failure_propagates_without_opt_in(finance_profile, external_config):
    adapter = FailingAdapter()
    service = make_service(adapter=adapter)

    with pytest.raises(InferenceUnavailableException):
        asyncio.run(service.generate_document(finance_profile, external_config, DocumentType.SECURITY_POLICY))
    assert adapter.calls == 2


def test_explicit_fallback_switch_is_recorded(finance_profile):
    service = make_service(adapter=FailingAdapter())
    config = GenerationConfig(inference_method=InferenceMethod.EXTERNAL, fallback_on_inference_failure=True)

    document = asyncio.run(service.generate_document(finance_profile, config, DocumentType.RISK_ASSESSMENT))

    assert document.is_generated()
    assert document.inference_method == "fallback"
    assert document.metadata["requested_inference_method"] == "external"
    assert "EXTERNAL_SERVICE_ERROR" in document.metadata["fallback_reason"]


def test_unconfigured_external_provider_with_opt_in(finance_profile):
    service = make_service(adapter=None)
    config = {"inference_method": "openai", "fallback_on_inference_failure": True}

    document = asyncio.run(service.generate_document(finance_profile, config, DocumentType.ISMS_SCOPE))

    assert document.inference_method == "fallback"
    assert document.metadata["fallback_reason"] == "not_configured"


def test_pipeline_timeout_leaves_no_document(finance_profile, external_config):
    adapter = SlowAdapter(delay_seconds=10.0)
    service = make_service(adapter=adapter, generation_timeout_seconds=0.1, inference_timeout_seconds=5.0)

    with pytest.raises(InferenceUnavailableException) as exc_info:
        asyncio.run(service.generate_document(finance_profile, external_config, DocumentType.RISK_ASSESSMENT))

    assert exc_info.value.last_error == "generation_timeout"
    assert adapter.cancelled


def test_cancellation_aborts_external_call(finance_profile, external_config):
    adapter = SlowAdapter(delay_seconds=10.0)
    service = make_service(adapter=adapter, inference_timeout_seconds=5.0)

    async def run():
        task = asyncio.create_task(
            service.generate_document(finance_profile, external_config, DocumentType.RISK_ASSESSMENT)
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert adapter.cancelled


def test_risk_assessment_requires_risk_inputs(fallback_config):
    service = make_service(repository=_empty_repository())
    profile = {"company_id": "c-5", "company_name": "Bare Co", "industry": "bare"}

    with pytest.raises(InsufficientDataException):
        asyncio.run(service.generate_document(profile, fallback_config, DocumentType.RISK_ASSESSMENT))

    policy = asyncio.run(service.generate_document(profile, fallback_config, DocumentType.SECURITY_POLICY))
    assert policy.is_generated()
    assert policy.scenarios == ()


def test_batch_generation_runs_all_types(finance_profile, fallback_config):
    service = make_service()
    result = asyncio.run(service.generate_documents(finance_profile, fallback_config, list(DocumentType)))

    assert result.succeeded
    assert set(result.documents) == set(DocumentType)
    assert result.documents[DocumentType.RISK_ASSESSMENT].scenarios
    assert result.documents[DocumentType.SECURITY_POLICY].scenarios == ()


def test_batch_collects_per_type_errors(fallback_config):
    service = make_service(repository=_empty_repository())
    profile = {"company_id": "c-6", "company_name": "Bare Co", "industry": "bare"}

    result = asyncio.run(service.generate_documents(
        profile, fallback_config, ["risk_assessment", "isms_scope", "isms_scope"]
    ))

    assert not result.succeeded
    assert list(result.documents) == [DocumentType.ISMS_SCOPE]
    assert isinstance(result.errors[DocumentType.RISK_ASSESSMENT], InsufficientDataException)
    assert result.error_summary()["risk_assessment"]["error_code"] == "INSUFFICIENT_DATA"


def test_batch_requires_document_types(finance_profile, fallback_config):
    with pytest.raises(ValidationException):
        asyncio.run(make_service().generate_documents(finance_profile, fallback_config, []))


def test_regeneration_bumps_version_and_tracks_scenario_changes(finance_profile, fallback_config):
    service = make_service()
    first = asyncio.run(service.generate_document(finance_profile, fallback_config, DocumentType.RISK_ASSESSMENT))

    unchanged = asyncio.run(service.regenerate_document(first, finance_profile, fallback_config))
    assert unchanged.version == 2
    assert unchanged.id != first.id
    assert unchanged.metadata["scenario_set_changed"] is False
    assert unchanged.metadata["previous_document_id"] == first.id

    enriched = finance_profile.model_copy(update={"threats": ["phishing", "Ransomware"]})
    changed = asyncio.run(service.regenerate_document(unchanged, enriched, fallback_config))
    assert changed.version == 3
    assert changed.metadata["scenario_set_changed"] is True


def test_regeneration_accepts_serialized_document(finance_profile, fallback_config):
    service = make_service()
    first = asyncio.run(service.generate_document(finance_profile, fallback_config, DocumentType.RISK_ASSESSMENT))

    again = asyncio.run(service.regenerate_document(first.to_dict(), finance_profile, fallback_config))
    assert again.version == 2
    assert again.metadata["scenario_set_changed"] is False


def test_regeneration_rejects_other_company(finance_profile, fallback_config):
    service = make_service()
    first = asyncio.run(service.generate_document(finance_profile, fallback_config, DocumentType.SECURITY_POLICY))
    other = finance_profile.model_copy(update={"company_id": "company-2"})

    with pytest.raises(ValidationException):
        asyncio.run(service.regenerate_document(first, other, fallback_config))


@pytest.mark.parametrize("config,document_type", [
    ({"inference_method": "fallback", "max_risk_scenarios": 25}, "risk_assessment"),
    ({"inference_method": "telepathy"}, "risk_assessment"),
    ({"inference_method": "fallback"}, "annual_report"),
])
def test_invalid_request_is_rejected(finance_profile, config, document_type):
    with pytest.raises(ValidationException):
        asyncio.run(make_service().generate_document(finance_profile, config, document_type))
