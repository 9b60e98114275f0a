"""
Document entity models for the domain layer.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from entities.risk_scenario import RiskScenario


class DocumentType(str, Enum):
    """ISO-27001 artifacts the engine can produce."""
    RISK_ASSESSMENT = "risk_assessment"
    SECURITY_POLICY = "security_policy"
    ISMS_SCOPE = "isms_scope"
    STATEMENT_OF_APPLICABILITY = "statement_of_applicability"


class DocumentStatus(str, Enum):
    """Document lifecycle status."""
    DRAFT = "draft"
    GENERATED = "generated"
    FAILED = "failed"


# Fixed narrative section keys per document type, in rendering order
SECTION_SCHEMAS: Dict[DocumentType, Tuple[str, ...]] = {
    DocumentType.RISK_ASSESSMENT: (
        "introduction",
        "scope",
        "methodology",
        "scenarios_narrative",
        "conclusion",
    ),
    DocumentType.SECURITY_POLICY: (
        "introduction",
        "objective",
        "scope",
        "principles",
        "roles_and_responsibilities",
        "policy_statements",
        "review",
    ),
    DocumentType.ISMS_SCOPE: (
        "introduction",
        "organization_context",
        "scope_boundaries",
        "information_assets",
        "interfaces_and_dependencies",
        "exclusions",
    ),
    DocumentType.STATEMENT_OF_APPLICABILITY: (
        "introduction",
        "objective",
        "methodology",
        "control_selection",
        "excluded_controls",
        "review",
    ),
}

SECTION_TITLES: Dict[str, str] = {
    "introduction": "Introduction",
    "scope": "Scope",
    "methodology": "Methodology",
    "scenarios_narrative": "Risk Scenarios",
    "conclusion": "Conclusions and Recommendations",
    "objective": "Objective",
    "principles": "Information Security Principles",
    "roles_and_responsibilities": "Roles and Responsibilities",
    "policy_statements": "Policy Statements",
    "review": "Review and Maintenance",
    "organization_context": "Organization Context",
    "scope_boundaries": "ISMS Scope Boundaries",
    "information_assets": "Information Assets in Scope",
    "interfaces_and_dependencies": "Interfaces and Dependencies",
    "exclusions": "Exclusions",
    "control_selection": "Control Selection",
    "excluded_controls": "Excluded Controls",
}

DOCUMENT_TITLES: Dict[DocumentType, str] = {
    DocumentType.RISK_ASSESSMENT: "Information Security Risk Assessment",
    DocumentType.SECURITY_POLICY: "Information Security Policy",
    DocumentType.ISMS_SCOPE: "ISMS Scope Statement",
    DocumentType.STATEMENT_OF_APPLICABILITY: "Statement of Applicability",
}

# Types whose payload carries the ranked scenario set
RISK_BEARING_TYPES: FrozenSet[DocumentType] = frozenset({DocumentType.RISK_ASSESSMENT})


def section_keys(document_type: DocumentType) -> Tuple[str, ...]:
    return SECTION_SCHEMAS[DocumentType(document_type)]


def requires_scenarios(document_type: DocumentType) -> bool:
    return DocumentType(document_type) in RISK_BEARING_TYPES


class Document(BaseModel):
    """
    Generated compliance document payload.

    Created in `draft` by the assembler and moved exactly once to either
    `generated` or `failed`.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    company_id: str
    type: DocumentType
    title: str = ""
    version: int = Field(1, ge=1)
    scenarios: Tuple[RiskScenario, ...] = Field(default_factory=tuple)
    sections: Dict[str, str] = Field(default_factory=dict)
    status: DocumentStatus = DocumentStatus.DRAFT
    inference_method: Optional[str] = None
    failure_reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def mark_generated(self) -> None:
        self._transition(DocumentStatus.GENERATED)

    def mark_failed(self, reason: str) -> None:
        self._transition(DocumentStatus.FAILED)
        self.failure_reason = reason

    def _transition(self, target: DocumentStatus) -> None:
        if self.status != DocumentStatus.DRAFT:
            raise ValueError(f"Cannot move document {self.id} from {self.status.value} to {target.value}")
        self.status = target

    def is_generated(self) -> bool:
        return self.status == DocumentStatus.GENERATED

    def scenario_triples(self) -> Tuple[Tuple[str, str, str], ...]:
        return tuple(scenario.triple for scenario in self.scenarios)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
