"""
Scores, deduplicates and caps candidate risk scenarios.
"""

from typing import Dict, List, Sequence, Tuple

from entities.risk_scenario import RiskScenario
from common.exceptions import InsufficientDataException
from common.validation import normalize_text, validate_max_risk_scenarios
from common.logging import get_logger

logger = get_logger("scenario_ranker")


def _normalized_triple(scenario: RiskScenario) -> Tuple[str, str, str]:
    return (
        normalize_text(scenario.asset),
        normalize_text(scenario.threat),
        normalize_text(scenario.vulnerability),
    )


def _sort_key(scenario: RiskScenario):
    # Highest score first, then highest impact, then the triple compared
    # case-insensitively ("apple" sorts before "Banana")
    return (
        -scenario.risk_score,
        -scenario.impact,
        scenario.asset.casefold(),
        scenario.threat.casefold(),
        scenario.vulnerability.casefold(),
    )


class ScenarioRanker:
    """Produces the bounded, ordered scenario set attached to documents."""

    def rank(
        self,
        candidates: Sequence[RiskScenario],
        max_count: int,
        require_scenarios: bool = True,
    ) -> List[RiskScenario]:
        """
        Rank candidates and keep at most `max_count` of them.

        Duplicates under normalized (asset, threat, vulnerability) comparison
        collapse to their best-ranked instance. Survivors get sequential
        scenario ids in rank order (R01, R02, ...).

        Raises:
            ValidationException: max_count outside the allowed range
            InsufficientDataException: no candidates and scenarios are required
        """
        max_count = validate_max_risk_scenarios(max_count, "max_count")

        if not candidates:
            if require_scenarios:
                raise InsufficientDataException(
                    detail="No risk scenarios could be derived from the merged profile; "
                           "information assets, threats and vulnerabilities are all required",
                    context={"candidate_count": 0, "max_count": max_count}
                )
            return []

        best: Dict[Tuple[str, str, str], RiskScenario] = {}
        for scenario in sorted(candidates, key=_sort_key):
            best.setdefault(_normalized_triple(scenario), scenario)

        ordered = sorted(best.values(), key=_sort_key)[:max_count]
        ranked = [
            scenario.model_copy(update={"scenario_id": f"R{index:02d}"})
            for index, scenario in enumerate(ordered, start=1)
        ]

        logger.info(
            f"Ranked {len(ranked)} of {len(candidates)} candidate scenarios",
            extra={
                "duplicates_removed": len(candidates) - len(best),
                "max_count": max_count,
            }
        )
        return ranked


def create_scenario_ranker() -> ScenarioRanker:
    """Factory function to create ScenarioRanker instance."""
    return ScenarioRanker()
