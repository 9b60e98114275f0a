"""
Company security profile and merged profile entity models.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


PROFILE_LIST_FIELDS = (
    "information_assets",
    "threats",
    "vulnerabilities",
    "existing_measures",
)


class CompanySecurityProfile(BaseModel):
    """
    Company-specific additions to the template baseline, plus the industry
    key used to select the template.
    """

    company_id: str = Field(..., min_length=1, description="Owning company identifier")
    company_name: str = Field(..., min_length=1, max_length=100)
    industry: str = Field(..., min_length=1, max_length=100, description="Industry key used for template lookup")

    information_assets: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)
    vulnerabilities: List[str] = Field(default_factory=list)
    existing_measures: List[str] = Field(default_factory=list)

    # Organization context used in narrative sections
    description: Optional[str] = None
    location: Optional[str] = None
    employee_count: Optional[int] = Field(None, ge=1)

    @field_validator('company_id', 'company_name', 'industry')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("value cannot be blank")
        return v


class MergedProfile(BaseModel):
    """
    Deduplicated union of template and company entries. Derived per
    generation request, never persisted.
    """
    model_config = ConfigDict(frozen=True)

    company_id: str
    company_name: str
    industry: str
    template_industry: str
    information_assets: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)
    vulnerabilities: List[str] = Field(default_factory=list)
    existing_measures: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    location: Optional[str] = None
    employee_count: Optional[int] = None

    @property
    def has_risk_inputs(self) -> bool:
        """Whether assets, threats and vulnerabilities are all present."""
        return bool(self.information_assets and self.threats and self.vulnerabilities)

    def entry_count(self) -> int:
        return sum(len(getattr(self, name)) for name in PROFILE_LIST_FIELDS)
