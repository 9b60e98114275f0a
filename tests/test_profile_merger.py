import pytest

from common.exceptions import ValidationException
from common.validation import normalize_text
from entities.company_profile import PROFILE_LIST_FIELDS
from services.profile_merger import ProfileMerger, merge_entries


def test_merge_keeps_first_seen_wording_and_appends_company_entries(finance_template, finance_profile):
    merged = ProfileMerger().merge(finance_template, finance_profile)

    assert merged.threats == ["Phishing"]
    assert merged.information_assets == ["Customer DB", "Payment Gateway"]
    assert merged.vulnerabilities == ["Weak MFA"]
    assert merged.existing_measures == []
    assert merged.template_industry == "finance"
    assert merged.company_name == "Acme Finance"
    assert merged.has_risk_inputs


def test_merge_entries_ignores_case_punctuation_and_blanks():
    assert merge_entries(["Phishing", "  "], ["phishing!", " Data  Loss ", "data loss", ""]) == [
        "Phishing",
        "Data  Loss",
    ]


def test_merged_lists_have_no_normalized_duplicates(finance_template):
    profile = {
        "company_id": "c-2",
        "company_name": "Dup Corp",
        "industry": "finance",
        "information_assets": ["customer db", "CUSTOMER DB.", "Ledger"],
        "threats": ["Phishing", "phishing"],
        "vulnerabilities": ["weak mfa"],
        "existing_measures": ["Backups", "backups"],
    }
    merged = ProfileMerger().merge(finance_template, profile)

    for field_name in PROFILE_LIST_FIELDS:
        entries = getattr(merged, field_name)
        normalized = [normalize_text(entry) for entry in entries]
        assert len(normalized) == len(set(normalized))
    assert merged.information_assets == ["Customer DB", "Ledger"]


def test_merge_accepts_plain_mappings(finance_template):
    template = finance_template.model_dump()
    merged = ProfileMerger().merge(template, {
        "company_id": "c-3",
        "company_name": "Mapping Ltd",
        "industry": "finance",
    })
    assert merged.information_assets == ["Customer DB"]


def test_template_missing_required_list_is_rejected(finance_profile):
    template = {
        "industry": "finance",
        "information_assets": ["Customer DB"],
        "threats": ["Phishing"],
        "vulnerabilities": ["Weak MFA"],
    }
    with pytest.raises(ValidationException) as exc_info:
        ProfileMerger().merge(template, finance_profile)

    assert exc_info.value.error_code == "VALIDATION_ERROR"
    assert exc_info.value.context["field"] == "template"
    assert "existing_measures" in exc_info.value.detail


def test_profile_with_null_list_is_rejected(finance_template):
    with pytest.raises(ValidationException):
        ProfileMerger().merge(finance_template, {
            "company_id": "c-4",
            "company_name": "Null Inc",
            "industry": "finance",
            "threats": None,
        })


def test_non_mapping_input_is_rejected(finance_template):
    with pytest.raises(ValidationException):
        ProfileMerger().merge(finance_template, ["not", "a", "profile"])
