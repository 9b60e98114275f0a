"""
Merges an industry security template with a company's own security profile.
"""

from typing import Any, Dict, List, Sequence, Union, Mapping

from entities.security_template import SecurityTemplate
from entities.company_profile import CompanySecurityProfile, MergedProfile, PROFILE_LIST_FIELDS
from common.validation import normalize_text, parse_model
from common.logging import get_logger

logger = get_logger("profile_merger")

TemplateInput = Union[SecurityTemplate, Mapping[str, Any]]
ProfileInput = Union[CompanySecurityProfile, Mapping[str, Any]]


def merge_entries(*sources: Sequence[str]) -> List[str]:
    """
    Concatenate entry lists, dropping duplicates under normalized comparison.

    The first-seen wording of each entry is kept; blank entries are skipped.
    """
    merged: List[str] = []
    seen = set()
    for source in sources:
        for entry in source:
            key = normalize_text(entry)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(entry.strip())
    return merged


class ProfileMerger:
    """Pure template/profile merge. No network or storage access."""

    def merge(self, template: TemplateInput, company_profile: ProfileInput) -> MergedProfile:
        template = parse_model(SecurityTemplate, template, "template")
        company_profile = parse_model(CompanySecurityProfile, company_profile, "company_profile")

        lists: Dict[str, List[str]] = {}
        for field_name in PROFILE_LIST_FIELDS:
            lists[field_name] = merge_entries(
                getattr(template, field_name),
                getattr(company_profile, field_name),
            )

        merged = MergedProfile(
            company_id=company_profile.company_id,
            company_name=company_profile.company_name,
            industry=company_profile.industry,
            template_industry=template.industry,
            description=company_profile.description,
            location=company_profile.location,
            employee_count=company_profile.employee_count,
            **lists,
        )

        logger.debug(
            "Merged security profile",
            extra={
                "template_industry": template.industry,
                "asset_count": len(merged.information_assets),
                "threat_count": len(merged.threats),
                "vulnerability_count": len(merged.vulnerabilities),
                "measure_count": len(merged.existing_measures),
            }
        )
        return merged


def create_profile_merger() -> ProfileMerger:
    """Factory function to create ProfileMerger instance."""
    return ProfileMerger()
