"""
Inference provider boundary shared by the external and fallback strategies.
"""

from typing import Any, Dict, List, Mapping, Protocol, Sequence, Tuple, runtime_checkable

from entities.company_profile import MergedProfile
from entities.document import DocumentType, section_keys
from entities.generation_config import InferenceMethod
from entities.risk_scenario import RiskScenario


@runtime_checkable
class InferenceProvider(Protocol):
    """
    Turns profile and scenario data into the narrative sections of one
    document type. Implementations must return exactly the section key set
    of the type with non-empty text, and must not alter the scenarios.
    """

    method: InferenceMethod

    async def synthesize(
        self,
        document_type: DocumentType,
        merged_profile: MergedProfile,
        scenarios: Sequence[RiskScenario],
    ) -> Dict[str, str]:
        ...


def section_problems(document_type: DocumentType, sections: Any) -> Tuple[List[str], List[str]]:
    """
    Compare synthesized sections with the schema of `document_type`.

    Returns (missing_or_empty, unexpected) key lists, both in a stable order.
    """
    expected = section_keys(document_type)
    if not isinstance(sections, Mapping):
        return list(expected), []

    missing = [
        key for key in expected
        if not isinstance(sections.get(key), str) or not sections[key].strip()
    ]
    unexpected = sorted(str(key) for key in sections if key not in expected)
    return missing, unexpected
