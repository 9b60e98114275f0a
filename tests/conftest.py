from typing import Optional

import pytest

from adapters.openai_adapter import BaseAIAdapter
from entities.company_profile import CompanySecurityProfile
from entities.generation_config import GenerationConfig, InferenceMethod
from entities.security_template import SecurityTemplate
from repositories.security_template_repository import InMemoryTemplateRepository
from services.document_generation_service import DocumentGenerationService
from services.external_inference import ExternalInference
from services.fallback_inference import FallbackInference
from services.profile_merger import ProfileMerger


FINANCE_TEMPLATE = SecurityTemplate(
    industry="finance",
    name="Financial Services",
    description="Minimal finance baseline",
    information_assets=["Customer DB"],
    threats=["Phishing"],
    vulnerabilities=["Weak MFA"],
    existing_measures=[],
)


def make_service(
    adapter: Optional[BaseAIAdapter] = None,
    generation_timeout_seconds: float = 5.0,
    inference_timeout_seconds: float = 1.0,
    repository: Optional[InMemoryTemplateRepository] = None,
) -> DocumentGenerationService:
    return DocumentGenerationService(
        template_repository=repository or InMemoryTemplateRepository([FINANCE_TEMPLATE]),
        external_inference=ExternalInference(
            adapter,
            timeout_seconds=inference_timeout_seconds,
            retry_delay_seconds=0,
        ),
        fallback_inference=FallbackInference(),
        generation_timeout_seconds=generation_timeout_seconds,
    )


@pytest.fixture
def finance_template() -> SecurityTemplate:
    return FINANCE_TEMPLATE


@pytest.fixture
def finance_profile() -> CompanySecurityProfile:
    return CompanySecurityProfile(
        company_id="company-1",
        company_name="Acme Finance",
        industry="finance",
        information_assets=["Payment Gateway"],
        threats=["phishing"],
        description="Acme Finance runs an online payments business.",
        location="Madrid",
        employee_count=40,
    )


@pytest.fixture
def merged_finance_profile(finance_template, finance_profile):
    return ProfileMerger().merge(finance_template, finance_profile)


@pytest.fixture
def fallback_config() -> GenerationConfig:
    return GenerationConfig(inference_method=InferenceMethod.FALLBACK, max_risk_scenarios=10)


@pytest.fixture
def external_config() -> GenerationConfig:
    return GenerationConfig(inference_method=InferenceMethod.EXTERNAL, max_risk_scenarios=10)
