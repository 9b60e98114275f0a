"""
SecurityTemplate entity model.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SecurityTemplate(BaseModel):
    """
    Reusable industry baseline of information assets, threats, vulnerabilities
    and existing measures. Immutable once published.
    """
    model_config = ConfigDict(frozen=True)

    industry: str = Field(..., min_length=1, max_length=100, description="Industry key used for template lookup")
    name: str = Field("", max_length=100, description="Display name of the template")
    description: Optional[str] = Field(None, description="Free text description")
    information_assets: List[str] = Field(..., description="Baseline information assets")
    threats: List[str] = Field(..., description="Baseline threats")
    vulnerabilities: List[str] = Field(..., description="Baseline vulnerabilities")
    existing_measures: List[str] = Field(..., description="Baseline security measures already in place")
    is_default: bool = Field(False, description="Catch-all template used when no industry matches")

    @field_validator('industry')
    @classmethod
    def validate_industry(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("industry cannot be blank")
        return v
