"""
Deterministic risk scenario generation from a merged security profile.

Scenarios are built from asset x threat x vulnerability combinations and
given draft likelihood/impact values from a fixed heuristic table. Both
inference strategies consume the same scenarios, so scenario identity never
depends on which one runs.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from entities.company_profile import MergedProfile
from entities.risk_scenario import RiskScenario, ThreatCategory
from common.exceptions import ValidationException
from common.validation import normalize_text, tokenize
from common.logging import get_logger

logger = get_logger("scenario_generator")


# Checked in order; the first category with a matching keyword wins
THREAT_CATEGORY_KEYWORDS: Tuple[Tuple[ThreatCategory, Tuple[str, ...]], ...] = (
    (ThreatCategory.EXTERNAL_ATTACK, (
        "attack", "hack", "hacking", "hacker", "phishing", "malware", "ransomware", "virus", "ddos",
        "denial of service", "injection", "intrusion", "exploit", "exploitation", "fraud",
        "spoofing", "social engineering", "botnet", "spyware",
    )),
    (ThreatCategory.UNAUTHORIZED_ACCESS, (
        "unauthorized", "unauthorised", "access", "bypass", "credential",
        "impersonation", "identity", "privilege",
    )),
    (ThreatCategory.DATA_LOSS, (
        "loss", "lost", "theft", "stolen", "leak", "leakage", "breach", "exfiltration",
        "disclosure", "confidentiality",
    )),
    (ThreatCategory.HUMAN_ERROR, (
        "error", "mistake", "human", "negligence", "insider", "misconfiguration",
    )),
    (ThreatCategory.TECHNICAL_FAILURE, (
        "failure", "outage", "power", "hardware", "downtime", "crash", "supplier",
    )),
    (ThreatCategory.NATURAL_DISASTER, (
        "fire", "flood", "earthquake", "storm", "natural", "disaster", "hurricane",
    )),
)

# (likelihood, impact) defaults per threat category
BASE_SCORES: Dict[ThreatCategory, Tuple[int, int]] = {
    ThreatCategory.EXTERNAL_ATTACK: (4, 4),
    ThreatCategory.UNAUTHORIZED_ACCESS: (3, 4),
    ThreatCategory.DATA_LOSS: (3, 4),
    ThreatCategory.HUMAN_ERROR: (3, 3),
    ThreatCategory.TECHNICAL_FAILURE: (2, 3),
    ThreatCategory.NATURAL_DISASTER: (1, 5),
    ThreatCategory.OTHER: (2, 3),
}

SENSITIVE_ASSET_KEYWORDS: Tuple[str, ...] = (
    "customer", "client", "financ*", "payment", "card", "personal", "critical",
    "credential", "confidential", "health", "patient", "payroll", "intellectual",
)

WEAKNESS_KEYWORDS: Tuple[str, ...] = (
    "weak*", "lack*", "missing", "insufficient", "inadequate", "outdated",
    "absence", "absent", "unpatched", "insecure", "poor", "limited",
)

RECOMMENDED_CONTROLS: Dict[ThreatCategory, Tuple[str, ...]] = {
    ThreatCategory.EXTERNAL_ATTACK: (
        "Deploy advanced anti-malware and email filtering",
        "Run regular vulnerability scans with a patch management process",
        "Deliver security awareness training covering social engineering",
    ),
    ThreatCategory.UNAUTHORIZED_ACCESS: (
        "Enforce multi-factor authentication",
        "Review access rights periodically",
        "Apply a strong password policy",
    ),
    ThreatCategory.DATA_LOSS: (
        "Encrypt sensitive data at rest and in transit",
        "Apply granular, need-to-know access controls",
        "Deploy data loss prevention (DLP) tooling",
    ),
    ThreatCategory.HUMAN_ERROR: (
        "Run a continuous security awareness programme",
        "Document standard operating procedures",
        "Add preventive technical controls for critical operations",
    ),
    ThreatCategory.TECHNICAL_FAILURE: (
        "Maintain tested backups with defined restore objectives",
        "Monitor capacity and provide redundancy for critical services",
        "Maintain an incident response and recovery procedure",
    ),
    ThreatCategory.NATURAL_DISASTER: (
        "Maintain and test a business continuity plan",
        "Keep off-site or cloud backups",
        "Protect facilities against environmental hazards",
    ),
    ThreatCategory.OTHER: (
        "Implement appropriate technical controls",
        "Establish supporting policies and procedures",
        "Perform periodic control reviews",
    ),
}


def _clamp(value: int) -> int:
    return max(1, min(5, value))


def _matches_keyword(normalized: str, keywords: Sequence[str]) -> bool:
    """
    Whole-word keyword match. Plain keywords also accept their plural form;
    a trailing `*` marks a stem matched as a word prefix.
    """
    words = normalized.split(" ")
    padded = f" {normalized} "
    for keyword in keywords:
        if " " in keyword:
            if f" {keyword} " in padded:
                return True
        elif keyword.endswith("*"):
            if any(word.startswith(keyword[:-1]) for word in words):
                return True
        elif any(word in (keyword, keyword + "s", keyword + "es") for word in words):
            return True
    return False


def classify_threat(threat: str) -> ThreatCategory:
    normalized = normalize_text(threat)
    for category, keywords in THREAT_CATEGORY_KEYWORDS:
        if _matches_keyword(normalized, keywords):
            return category
    return ThreatCategory.OTHER


class ScenarioGenerator:
    """Expands a merged profile into candidate (unranked, unbounded) scenarios."""

    def generate(self, merged_profile: MergedProfile) -> List[RiskScenario]:
        if not isinstance(merged_profile, MergedProfile):
            raise ValidationException(
                detail="Scenario generation requires a MergedProfile",
                field="merged_profile",
                value=type(merged_profile).__name__
            )

        if not merged_profile.has_risk_inputs:
            logger.warning(
                "Merged profile lacks assets, threats or vulnerabilities; no scenarios generated",
                extra={"company_id": merged_profile.company_id}
            )
            return []

        eligible = self._eligible_vulnerabilities(
            merged_profile.information_assets,
            merged_profile.vulnerabilities,
        )

        scenarios: List[RiskScenario] = []
        for threat in merged_profile.threats:
            category = classify_threat(threat)
            for asset in merged_profile.information_assets:
                for vulnerability in eligible[asset]:
                    measure = self._find_existing_measure(asset, threat, merged_profile.existing_measures)
                    likelihood, impact = self._score(category, asset, vulnerability, measure)
                    scenarios.append(RiskScenario(
                        asset=asset,
                        threat=threat,
                        vulnerability=vulnerability,
                        existing_measure=measure,
                        threat_category=category,
                        likelihood=likelihood,
                        impact=impact,
                        recommended_controls=RECOMMENDED_CONTROLS[category],
                    ))

        logger.info(
            f"Generated {len(scenarios)} candidate risk scenarios",
            extra={"company_id": merged_profile.company_id}
        )
        return scenarios

    def _eligible_vulnerabilities(
        self,
        assets: Sequence[str],
        vulnerabilities: Sequence[str],
    ) -> Dict[str, List[str]]:
        """
        Map each asset to the vulnerabilities that apply to it.

        A vulnerability applies to an asset when they share a significant
        token. Vulnerabilities that share a token with no asset at all are
        treated as unscoped and apply to every asset. An asset left with no
        vulnerability falls back to the full list.
        """
        asset_tokens = {asset: set(tokenize(asset)) for asset in assets}
        vuln_tokens = {vuln: set(tokenize(vuln)) for vuln in vulnerabilities}

        unscoped = [
            vuln for vuln in vulnerabilities
            if not any(vuln_tokens[vuln] & tokens for tokens in asset_tokens.values())
        ]

        eligible: Dict[str, List[str]] = {}
        for asset in assets:
            matches = [vuln for vuln in vulnerabilities if vuln_tokens[vuln] & asset_tokens[asset]]
            applicable = [vuln for vuln in vulnerabilities if vuln in matches or vuln in unscoped]
            eligible[asset] = applicable or list(vulnerabilities)
        return eligible

    def _find_existing_measure(
        self,
        asset: str,
        threat: str,
        measures: Sequence[str],
    ) -> Optional[str]:
        keywords = tokenize(asset) + [t for t in tokenize(threat) if t not in tokenize(asset)]
        for measure in measures:
            normalized = normalize_text(measure)
            if any(keyword in normalized for keyword in keywords):
                return measure
        return None

    def _score(
        self,
        category: ThreatCategory,
        asset: str,
        vulnerability: str,
        measure: Optional[str],
    ) -> Tuple[int, int]:
        likelihood, impact = BASE_SCORES[category]

        if _matches_keyword(normalize_text(asset), SENSITIVE_ASSET_KEYWORDS):
            impact += 1
        if _matches_keyword(normalize_text(vulnerability), WEAKNESS_KEYWORDS):
            likelihood += 1
        if measure is not None:
            likelihood -= 1

        return _clamp(likelihood), _clamp(impact)


def create_scenario_generator() -> ScenarioGenerator:
    """Factory function to create ScenarioGenerator instance."""
    return ScenarioGenerator()
