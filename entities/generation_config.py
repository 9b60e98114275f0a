"""
Per-request generation configuration supplied from user settings.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


class InferenceMethod(str, Enum):
    """Content-inference strategy used to narrate document sections."""
    EXTERNAL = "external"
    FALLBACK = "fallback"


# Values stored by older user settings
_METHOD_ALIASES = {
    "openai": InferenceMethod.EXTERNAL,
    "ai": InferenceMethod.EXTERNAL,
    "rules": InferenceMethod.FALLBACK,
}


class GenerationConfig(BaseModel):
    """
    Inference method and scenario cap for one generation request.

    `fallback_on_inference_failure` is the caller's explicit opt-in to switch
    to the offline fallback when the external provider is unavailable.
    """
    model_config = ConfigDict(frozen=True)

    inference_method: InferenceMethod = InferenceMethod.FALLBACK
    max_risk_scenarios: int = Field(10, ge=1, le=20)
    fallback_on_inference_failure: bool = False

    @field_validator('inference_method', mode='before')
    @classmethod
    def normalize_method(cls, v):
        if isinstance(v, str):
            key = v.strip().lower()
            return _METHOD_ALIASES.get(key, key)
        return v
