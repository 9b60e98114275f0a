"""
Markdown rendering of assembled documents.
"""

from typing import List, Optional, Sequence

from entities.company_profile import MergedProfile
from entities.document import Document, DocumentType, SECTION_TITLES, section_keys
from entities.risk_scenario import RiskLevel, RiskScenario
from common.exceptions import ValidationException
from common.logging import get_logger

logger = get_logger("document_renderer")

# Risk tables are inserted right after this section
RISK_TABLE_ANCHOR = "scenarios_narrative"

TREATMENT_PRIORITY = {
    RiskLevel.HIGH: "High priority: treat immediately",
    RiskLevel.MEDIUM: "Medium priority: plan mitigation",
    RiskLevel.LOW: "Low priority: accept and monitor",
}


def _cell(value: Optional[str]) -> str:
    if not value:
        return "-"
    return str(value).replace("|", "\\|").replace("\n", " ")


def render_risk_table(scenarios: Sequence[RiskScenario]) -> str:
    lines = [
        "| ID | Asset | Threat | Vulnerability | Existing measure | Likelihood | Impact | Score | Level |",
        "| --- | --- | --- | --- | --- | --- | --- | --- | --- |",
    ]
    for scenario in scenarios:
        lines.append(
            f"| {_cell(scenario.scenario_id)} | {_cell(scenario.asset)} | {_cell(scenario.threat)} "
            f"| {_cell(scenario.vulnerability)} | {_cell(scenario.existing_measure)} "
            f"| {scenario.likelihood} | {scenario.impact} | {scenario.risk_score} "
            f"| {scenario.risk_level.value.capitalize()} |"
        )
    return "\n".join(lines)


def render_treatment_plan(scenarios: Sequence[RiskScenario]) -> str:
    blocks: List[str] = []
    for level in (RiskLevel.HIGH, RiskLevel.MEDIUM, RiskLevel.LOW):
        matching = [s for s in scenarios if s.risk_level == level]
        if not matching:
            continue
        blocks.append(f"### {TREATMENT_PRIORITY[level]}")
        for scenario in matching:
            blocks.append(
                f"**{scenario.scenario_id or '-'} {scenario.asset} / {scenario.threat}** "
                f"(score {scenario.risk_score})"
            )
            blocks.append("\n".join(f"- {control}" for control in scenario.recommended_controls) or "- Monitor")
    return "\n\n".join(blocks) if blocks else "No risks require treatment."


class DocumentRenderer:
    """Renders generated documents as Markdown."""

    def render_markdown(self, document: Document, merged_profile: Optional[MergedProfile] = None) -> str:
        if not isinstance(document, Document):
            raise ValidationException(
                detail="Only Document instances can be rendered",
                field="document",
                value=type(document).__name__
            )
        if not document.is_generated():
            raise ValidationException(
                detail=f"Document {document.id} is {document.status.value} and cannot be rendered",
                field="status",
                value=document.status.value
            )

        organization = merged_profile.company_name if merged_profile else document.company_id
        parts: List[str] = [
            f"# {document.title.upper()}",
            "## Document Information",
            "\n".join([
                f"- **Organization:** {organization}",
                *([f"- **Industry:** {merged_profile.industry}"] if merged_profile else []),
                f"- **Date:** {document.created_at.date().isoformat()}",
                f"- **Version:** {document.version}.0",
                f"- **Status:** {document.status.value}",
            ]),
        ]

        number = 0
        for key in section_keys(document.type):
            number += 1
            parts.append(f"## {number}. {SECTION_TITLES[key]}")
            parts.append(document.sections[key])

            if key == RISK_TABLE_ANCHOR and document.type == DocumentType.RISK_ASSESSMENT:
                number += 1
                parts.append(f"## {number}. Risk Analysis")
                parts.append(render_risk_table(document.scenarios))
                number += 1
                parts.append(f"## {number}. Risk Treatment Plan")
                parts.append(render_treatment_plan(document.scenarios))

        parts.append(f"## {number + 1}. Approval")
        parts.append("Approved by:\nName: ____________\nRole: ____________\nDate: ____________\nSignature: ____________")

        markdown = "\n\n".join(parts) + "\n"
        logger.debug(f"Rendered document {document.id} ({len(markdown)} chars)")
        return markdown


def create_document_renderer() -> DocumentRenderer:
    """Factory function to create DocumentRenderer instance."""
    return DocumentRenderer()
