import asyncio

import pytest

from common.exceptions import BusinessLogicException, ResourceNotFoundException
from entities.security_template import SecurityTemplate
from repositories.security_template_repository import BUILTIN_TEMPLATES, InMemoryTemplateRepository


def _template(industry, is_default=False):
    return SecurityTemplate(
        industry=industry,
        name=industry.title(),
        information_assets=["Ledger"],
        threats=["Fire"],
        vulnerabilities=["No sprinklers"],
        existing_measures=[],
        is_default=is_default,
    )


def test_builtin_catalog_has_single_default():
    defaults = [t for t in BUILTIN_TEMPLATES if t.is_default]
    assert [t.industry for t in defaults] == ["general"]

    templates = asyncio.run(InMemoryTemplateRepository().list_templates())
    assert {t.industry for t in templates} == {"technology", "ecommerce", "professional_services", "general"}


def test_resolves_by_normalized_industry():
    template = asyncio.run(InMemoryTemplateRepository().resolve_template("  Technology "))
    assert template.industry == "technology"


def test_unknown_industry_uses_default():
    template = asyncio.run(InMemoryTemplateRepository().resolve_template("aerospace"))
    assert template.industry == "general"


def test_missing_template_and_default_raises():
    repository = InMemoryTemplateRepository([_template("mining")], include_builtin=False)

    with pytest.raises(ResourceNotFoundException) as exc_info:
        asyncio.run(repository.resolve_template("aerospace"))
    assert exc_info.value.status_code == 404


def test_second_default_is_rejected():
    with pytest.raises(BusinessLogicException) as exc_info:
        InMemoryTemplateRepository([_template("mining", is_default=True)])
    assert exc_info.value.error_code == "DUPLICATE_DEFAULT_TEMPLATE"


def test_custom_template_overrides_builtin():
    repository = InMemoryTemplateRepository([_template("technology")])
    template = asyncio.run(repository.get_by_industry("technology"))
    assert template.threats == ["Fire"]
