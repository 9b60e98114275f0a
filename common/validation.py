"""
Input validation and text normalization utilities.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

from common.exceptions import ValidationException
from common.logging import get_logger

logger = get_logger("validation")

ModelT = TypeVar("ModelT", bound=BaseModel)

MIN_RISK_SCENARIOS = 1
MAX_RISK_SCENARIOS = 20

_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")

# Words too generic to link an asset to a vulnerability
STOP_WORDS: Set[str] = {
    "and", "the", "for", "with", "from", "into", "over", "under", "without",
    "not", "are", "was", "its", "our", "all", "any", "per", "via",
    "los", "las", "del", "con", "para", "por", "sin", "una", "uno",
}


def normalize_text(value: str) -> str:
    """Trim, lowercase, strip punctuation and collapse whitespace."""
    if value is None:
        return ""
    text = _PUNCTUATION_RE.sub("", str(value).lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def tokenize(value: str, min_length: int = 3) -> List[str]:
    """Significant normalized tokens of a phrase, in order of appearance."""
    tokens: List[str] = []
    for token in normalize_text(value).split(" "):
        if len(token) >= min_length and token not in STOP_WORDS and token not in tokens:
            tokens.append(token)
    return tokens


def validate_max_risk_scenarios(value: Any, field: str = "max_risk_scenarios") -> int:
    """Validate the scenario cap (inclusive 1..20)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationException(
            detail=f"{field} must be an integer",
            field=field,
            value=value
        )

    if value < MIN_RISK_SCENARIOS or value > MAX_RISK_SCENARIOS:
        raise ValidationException(
            detail=f"{field} must be between {MIN_RISK_SCENARIOS} and {MAX_RISK_SCENARIOS}",
            field=field,
            value=value,
            context={"min": MIN_RISK_SCENARIOS, "max": MAX_RISK_SCENARIOS}
        )

    return value


def parse_model(model_cls: Type[ModelT], data: Any, field: str) -> ModelT:
    """
    Coerce a model instance or a plain mapping into `model_cls`.

    Pydantic validation errors are reported as a single ValidationException
    listing every offending location, so callers never see partial objects.
    """
    if isinstance(data, model_cls):
        return data

    if isinstance(data, BaseModel):
        data = data.model_dump()

    if not isinstance(data, Mapping):
        raise ValidationException(
            detail=f"{field} must be a {model_cls.__name__} or a mapping",
            field=field,
            value=type(data).__name__
        )

    try:
        return model_cls.model_validate(dict(data))
    except ValidationError as e:
        errors: List[Dict[str, Any]] = [
            {"location": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        logger.warning(f"Invalid {model_cls.__name__} input: {len(errors)} error(s)")
        raise ValidationException(
            detail=f"Invalid {field}: " + "; ".join(f"{err['location']}: {err['message']}" for err in errors),
            field=field,
            context={"field": field, "errors": errors}
        )


def require_non_blank(value: Optional[str], field: str) -> str:
    """Validate that a string field is present and not blank."""
    if value is None or not str(value).strip():
        raise ValidationException(
            detail=f"{field} cannot be empty",
            field=field,
            value=value
        )
    return str(value).strip()
