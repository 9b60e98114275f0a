"""
RiskScenario entity model.
"""

from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class RiskLevel(str, Enum):
    """Risk level classifications on the 5x5 matrix."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ThreatCategory(str, Enum):
    """Threat categories driving the draft likelihood/impact table."""
    EXTERNAL_ATTACK = "external_attack"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    DATA_LOSS = "data_loss"
    HUMAN_ERROR = "human_error"
    TECHNICAL_FAILURE = "technical_failure"
    NATURAL_DISASTER = "natural_disaster"
    OTHER = "other"


HIGH_RISK_THRESHOLD = 15
MEDIUM_RISK_THRESHOLD = 8


def risk_level_for_score(score: int) -> RiskLevel:
    if score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskScenario(BaseModel):
    """
    A scored (asset, threat, vulnerability) combination.

    `risk_score` is always likelihood * impact; pass it explicitly only when
    restoring a stored scenario, in which case it is checked.
    """
    model_config = ConfigDict(frozen=True)

    scenario_id: Optional[str] = Field(None, description="Rank-ordered identifier such as R01")
    asset: str = Field(..., min_length=1)
    threat: str = Field(..., min_length=1)
    vulnerability: str = Field(..., min_length=1)
    existing_measure: Optional[str] = None
    threat_category: ThreatCategory = ThreatCategory.OTHER
    likelihood: int = Field(..., ge=1, le=5)
    impact: int = Field(..., ge=1, le=5)
    risk_score: int = Field(0, ge=0, le=25)
    recommended_controls: Tuple[str, ...] = Field(default_factory=tuple)

    @model_validator(mode="before")
    @classmethod
    def compute_risk_score(cls, data):
        if isinstance(data, dict) and data.get("likelihood") is not None and data.get("impact") is not None:
            expected = int(data["likelihood"]) * int(data["impact"])
            provided = data.get("risk_score")
            if provided not in (None, 0) and provided != expected:
                raise ValueError(f"risk_score {provided} does not equal likelihood * impact ({expected})")
            data = {**data, "risk_score": expected}
        return data

    @computed_field
    @property
    def risk_level(self) -> RiskLevel:
        return risk_level_for_score(self.risk_score)

    @property
    def triple(self) -> Tuple[str, str, str]:
        return (self.asset, self.threat, self.vulnerability)

    def controls_list(self) -> List[str]:
        return list(self.recommended_controls)
