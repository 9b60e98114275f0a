"""
Deterministic offline narrative synthesis.

Sections are produced by interpolating the merged profile and the ranked
scenarios into fixed English templates. No network access, no randomness.
"""

from typing import Callable, Dict, List, Sequence

from entities.company_profile import MergedProfile
from entities.document import DocumentType, DOCUMENT_TITLES, section_keys
from entities.generation_config import InferenceMethod
from entities.risk_scenario import RiskLevel, RiskScenario, HIGH_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD
from common.exceptions import ValidationException
from common.logging import get_logger

logger = get_logger("fallback_inference")

SectionBuilder = Callable[[MergedProfile, Sequence[RiskScenario]], Dict[str, str]]


def _bullets(items: Sequence[str], empty_text: str) -> str:
    if not items:
        return empty_text
    return "\n".join(f"- {item}" for item in items)


def _organization_line(profile: MergedProfile) -> str:
    if profile.description:
        return profile.description.strip()
    return f"{profile.company_name} is an organization operating in the {profile.industry} sector."


def _level_counts(scenarios: Sequence[RiskScenario]) -> Dict[RiskLevel, int]:
    counts = {level: 0 for level in RiskLevel}
    for scenario in scenarios:
        counts[scenario.risk_level] += 1
    return counts


def _risk_assessment(profile: MergedProfile, scenarios: Sequence[RiskScenario]) -> Dict[str, str]:
    counts = _level_counts(scenarios)
    name = profile.company_name

    if scenarios:
        narrative = "\n\n".join(
            f"{scenario.scenario_id or '-'} {scenario.asset}: the threat \"{scenario.threat}\" may exploit "
            f"\"{scenario.vulnerability}\" (likelihood {scenario.likelihood}, impact {scenario.impact}, "
            f"score {scenario.risk_score}, {scenario.risk_level.value} risk). "
            + (
                f"Existing measure: {scenario.existing_measure}."
                if scenario.existing_measure else "No existing measure addresses this scenario."
            )
            for scenario in scenarios
        )
    else:
        narrative = "No risk scenarios were identified from the available security information."

    if counts[RiskLevel.HIGH]:
        conclusion = (
            f"The assessment identified {counts[RiskLevel.HIGH]} high-level risk(s) that require "
            f"priority treatment. {name} should implement the recommended controls for these "
            f"scenarios first and review the remaining medium and low risks on a regular basis."
        )
    else:
        conclusion = (
            f"No high-level risks were identified. {name} should keep monitoring the "
            f"{counts[RiskLevel.MEDIUM]} medium and {counts[RiskLevel.LOW]} low risk(s) and "
            f"review this assessment at least once a year."
        )

    return {
        "introduction": (
            f"This document presents the information security risk assessment for {name}, "
            f"identifying and evaluating the risks to the confidentiality, integrity and "
            f"availability of its information assets."
        ),
        "scope": (
            f"The assessment covers the following information assets of {name}:\n"
            + _bullets(profile.information_assets, "- No information assets were recorded.")
        ),
        "methodology": (
            "Each risk is the combination of an information asset, a threat and a vulnerability. "
            "Likelihood and impact are rated on a 1-5 scale and the risk score is their product. "
            f"Scores of {HIGH_RISK_THRESHOLD} or more are high, scores of {MEDIUM_RISK_THRESHOLD} "
            f"or more are medium, and lower scores are low."
        ),
        "scenarios_narrative": (
            f"{len(scenarios)} risk scenario(s) were assessed: {counts[RiskLevel.HIGH]} high, "
            f"{counts[RiskLevel.MEDIUM]} medium and {counts[RiskLevel.LOW]} low.\n\n{narrative}"
        ),
        "conclusion": conclusion,
    }


def _security_policy(profile: MergedProfile, scenarios: Sequence[RiskScenario]) -> Dict[str, str]:
    name = profile.company_name
    return {
        "introduction": (
            f"This document establishes the Information Security Policy of {name}, providing the "
            f"reference framework for protecting the organization's information assets."
        ),
        "objective": (
            f"The objective of this policy is to protect the confidentiality, integrity and "
            f"availability of {name}'s information and to ensure compliance with applicable legal, "
            f"regulatory and contractual obligations."
        ),
        "scope": (
            f"This policy applies to all employees, contractors and third parties with access to the "
            f"information assets of {name}, including:\n"
            + _bullets(profile.information_assets, "- All information processed by the organization.")
        ),
        "principles": (
            "Confidentiality: information is accessible only to those authorized to access it.\n"
            "Integrity: the accuracy and completeness of information are safeguarded.\n"
            "Availability: information is available to authorized users when required."
        ),
        "roles_and_responsibilities": (
            "Top management approves this policy and allocates resources to the ISMS. "
            "The information security officer develops, maintains and reports on the ISMS. "
            "Department heads implement controls in their areas. Employees, contractors and "
            "third parties comply with security procedures and report incidents."
        ),
        "policy_statements": (
            f"{name} addresses the following threats identified for its sector:\n"
            + _bullets(profile.threats, "- No specific threats were recorded.")
            + "\n\nThe following security measures are already in place and must be maintained:\n"
            + _bullets(profile.existing_measures, "- No existing measures were recorded.")
        ),
        "review": (
            "This policy is reviewed at least once a year, or whenever significant changes occur, "
            "to ensure its continuing suitability, adequacy and effectiveness."
        ),
    }


def _isms_scope(profile: MergedProfile, scenarios: Sequence[RiskScenario]) -> Dict[str, str]:
    name = profile.company_name
    context_lines = [
        _organization_line(profile),
        f"Industry: {profile.industry}",
        f"Location: {profile.location or 'Not specified'}",
        f"Size: {f'{profile.employee_count} employees' if profile.employee_count else 'Not specified'}",
    ]
    return {
        "introduction": (
            f"This document defines the scope of the Information Security Management System (ISMS) "
            f"of {name}, establishing its boundaries and applicability within the organization."
        ),
        "organization_context": "\n".join(context_lines),
        "scope_boundaries": (
            "The ISMS covers the core business processes, human resources management, information "
            "asset management, access management, IT operations and incident management of "
            f"{name}" + (f", at its {profile.location} location." if profile.location else ".")
        ),
        "information_assets": _bullets(
            profile.information_assets,
            "No information assets were recorded for the organization."
        ),
        "interfaces_and_dependencies": (
            f"The ISMS depends on the following security measures operated by {name}:\n"
            + _bullets(profile.existing_measures, "- No existing measures were recorded.")
        ),
        "exclusions": (
            "Personal devices of employees that are not connected to the corporate network, and "
            "external suppliers that do not access sensitive information, are excluded from the scope."
        ),
    }


def _statement_of_applicability(profile: MergedProfile, scenarios: Sequence[RiskScenario]) -> Dict[str, str]:
    name = profile.company_name
    controls: List[str] = []
    for scenario in scenarios:
        for control in scenario.recommended_controls:
            if control not in controls:
                controls.append(control)

    return {
        "introduction": (
            f"This Statement of Applicability (SoA) identifies the Annex A controls of ISO/IEC 27001 "
            f"that apply to the ISMS of {name}."
        ),
        "objective": (
            f"The objectives of this document are to identify the security controls applicable to "
            f"{name}, to justify the inclusion or exclusion of each control, and to serve as a "
            f"reference for implementing and improving the ISMS."
        ),
        "methodology": (
            f"Controls were selected from the results of the risk assessment ({len(scenarios)} ranked "
            f"scenario(s)), the applicable legal and contractual requirements, and industry practice "
            f"for the {profile.industry} sector."
        ),
        "control_selection": (
            "The following controls are applicable based on the identified risks:\n"
            + _bullets(controls, "- All Annex A controls apply pending a risk assessment.")
        ),
        "excluded_controls": (
            "No controls are excluded. All Annex A controls are considered applicable to the "
            "organization."
        ),
        "review": (
            "This Statement of Applicability is reviewed at least once a year, after significant "
            "organizational changes, and after each revision of the risk assessment."
        ),
    }


SECTION_BUILDERS: Dict[DocumentType, SectionBuilder] = {
    DocumentType.RISK_ASSESSMENT: _risk_assessment,
    DocumentType.SECURITY_POLICY: _security_policy,
    DocumentType.ISMS_SCOPE: _isms_scope,
    DocumentType.STATEMENT_OF_APPLICABILITY: _statement_of_applicability,
}


class FallbackInference:
    """Offline inference provider. Always available."""

    method = InferenceMethod.FALLBACK

    async def synthesize(
        self,
        document_type: DocumentType,
        merged_profile: MergedProfile,
        scenarios: Sequence[RiskScenario],
    ) -> Dict[str, str]:
        document_type = self._validate(document_type, merged_profile, scenarios)

        sections = SECTION_BUILDERS[document_type](merged_profile, tuple(scenarios))

        # Builders are keyed by the schema; keep the schema order
        ordered = {key: sections[key] for key in section_keys(document_type)}
        logger.debug(
            f"Fallback synthesized {len(ordered)} sections for {DOCUMENT_TITLES[document_type]}",
            extra={"company_id": merged_profile.company_id}
        )
        return ordered

    def _validate(self, document_type, merged_profile, scenarios) -> DocumentType:
        try:
            document_type = DocumentType(document_type)
        except ValueError:
            raise ValidationException(
                detail=f"Unsupported document type: {document_type}",
                field="document_type",
                value=document_type
            )

        if not isinstance(merged_profile, MergedProfile):
            raise ValidationException(
                detail="Fallback inference requires a MergedProfile",
                field="merged_profile",
                value=type(merged_profile).__name__
            )

        if scenarios is None or any(not isinstance(s, RiskScenario) for s in scenarios):
            raise ValidationException(
                detail="Scenarios must be a sequence of RiskScenario",
                field="scenarios"
            )

        return document_type


def create_fallback_inference() -> FallbackInference:
    """Factory function to create FallbackInference instance."""
    return FallbackInference()
