"""
Centralized exception classes for the ISMS document engine.
Provides a hierarchy of custom exceptions with proper error codes and messages.
"""

from typing import Optional, Dict, Any, List
from fastapi import HTTPException, status


class BaseComplianceException(HTTPException):
    """Base exception class for all document engine errors."""

    retriable: bool = False

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def __str__(self) -> str:
        return f"{self.error_code}: {self.detail}"


# Validation Exceptions
class ValidationException(BaseComplianceException):
    """Malformed template, profile or configuration input."""

    def __init__(
        self,
        detail: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            context=context or {"field": field, "value": value}
        )
        self.field = field


# Resource Exceptions
class ResourceNotFoundException(BaseComplianceException):
    """Resource not found errors."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=f"{resource_type} with ID '{resource_id}' not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
            context=context or {"resource_type": resource_type, "resource_id": resource_id}
        )


# Business Logic Exceptions
class BusinessLogicException(BaseComplianceException):
    """Business logic errors."""

    def __init__(
        self,
        detail: str,
        error_code: str = "BUSINESS_LOGIC_ERROR",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status_code,
            error_code=error_code,
            context=context
        )


class InsufficientDataException(BusinessLogicException):
    """No eligible risk scenarios could be derived; the profile needs enrichment."""

    def __init__(
        self,
        detail: str = "Not enough security data to derive risk scenarios",
        document_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            error_code="INSUFFICIENT_DATA",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            context=context or {"document_type": document_type}
        )


class DocumentAssemblyException(BusinessLogicException):
    """Synthesized sections violate the document schema. Treated as a defect."""

    def __init__(
        self,
        document_type: str,
        missing_sections: List[str],
        document: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=(
                f"Document '{document_type}' is missing or has empty sections: "
                f"{', '.join(missing_sections) or 'none'}"
            ),
            error_code="DOCUMENT_ASSEMBLY_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            context=context or {"document_type": document_type, "missing_sections": missing_sections}
        )
        self.missing_sections = list(missing_sections)
        self.document = document


# External Service Exceptions
class ExternalServiceException(BaseComplianceException):
    """External service errors."""

    retriable = True

    def __init__(
        self,
        detail: str,
        service_name: str,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=error_code,
            context=context or {"service_name": service_name}
        )
        self.service_name = service_name


class InferenceUnavailableException(ExternalServiceException):
    """External inference failed after its retry. Switch to the fallback method to recover."""

    def __init__(
        self,
        detail: str = "External inference provider is unavailable",
        attempts: int = 0,
        last_error: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            detail=detail,
            service_name="inference",
            error_code="INFERENCE_UNAVAILABLE",
            context=context or {
                "attempts": attempts,
                "last_error": last_error,
                "suggested_inference_method": "fallback",
            }
        )
        self.attempts = attempts
        self.last_error = last_error
