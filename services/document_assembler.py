"""
Assembles validated narrative sections and ranked scenarios into a Document.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

from entities.document import Document, DocumentType, DOCUMENT_TITLES, requires_scenarios, section_keys
from entities.risk_scenario import RiskScenario
from services.inference_provider import section_problems
from common.exceptions import DocumentAssemblyException, ValidationException
from common.logging import get_logger, log_error

logger = get_logger("document_assembler")


class DocumentAssembler:
    """
    Builds documents in `draft` and moves them to `generated` only when the
    section set matches the schema of the document type exactly.
    """

    def assemble(
        self,
        document_type: DocumentType,
        scenarios: Sequence[RiskScenario],
        sections: Mapping[str, Any],
        company_id: str,
        version: int = 1,
        inference_method: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Document:
        try:
            document_type = DocumentType(document_type)
        except ValueError:
            raise ValidationException(
                detail=f"Unsupported document type: {document_type}",
                field="document_type",
                value=document_type
            )

        attached = tuple(scenarios) if requires_scenarios(document_type) else ()
        document = Document(
            company_id=company_id,
            type=document_type,
            title=DOCUMENT_TITLES[document_type],
            version=version,
            scenarios=attached,
            inference_method=inference_method,
            metadata=dict(metadata or {}),
        )

        missing, unexpected = section_problems(document_type, sections)
        if requires_scenarios(document_type) and not attached:
            missing = missing + ["scenarios"]

        if missing or unexpected:
            reason = self._failure_reason(missing, unexpected)
            document.mark_failed(reason)
            error = DocumentAssemblyException(
                document_type=document_type.value,
                missing_sections=missing,
                document=document,
                context={
                    "document_id": document.id,
                    "document_type": document_type.value,
                    "missing_sections": missing,
                    "unexpected_sections": unexpected,
                    "inference_method": inference_method,
                }
            )
            log_error(error, {"company_id": company_id})
            raise error

        document.sections = {key: sections[key] for key in section_keys(document_type)}
        document.mark_generated()

        logger.info(
            f"Assembled {document_type.value} document {document.id}",
            extra={
                "company_id": company_id,
                "scenario_count": len(attached),
                "section_count": len(document.sections),
            }
        )
        return document

    def _failure_reason(self, missing, unexpected) -> str:
        parts = []
        if missing:
            parts.append(f"missing or empty: {', '.join(missing)}")
        if unexpected:
            parts.append(f"unexpected: {', '.join(unexpected)}")
        return "Section set does not match schema (" + "; ".join(parts) + ")"


def create_document_assembler() -> DocumentAssembler:
    """Factory function to create DocumentAssembler instance."""
    return DocumentAssembler()
