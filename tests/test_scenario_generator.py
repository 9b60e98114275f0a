import pytest

from common.exceptions import ValidationException
from entities.company_profile import MergedProfile
from entities.risk_scenario import RiskLevel, ThreatCategory
from services.scenario_generator import RECOMMENDED_CONTROLS, ScenarioGenerator, classify_threat


def _profile(**lists) -> MergedProfile:
    data = {
        "company_id": "c-1",
        "company_name": "Acme",
        "industry": "retail",
        "template_industry": "general",
        "information_assets": [],
        "threats": [],
        "vulnerabilities": [],
        "existing_measures": [],
    }
    data.update(lists)
    return MergedProfile(**data)


@pytest.mark.parametrize("threat,category", [
    ("Phishing", ThreatCategory.EXTERNAL_ATTACK),
    ("Targeted attacks", ThreatCategory.EXTERNAL_ATTACK),
    ("Unauthorized access", ThreatCategory.UNAUTHORIZED_ACCESS),
    ("Data loss", ThreatCategory.DATA_LOSS),
    ("Human error", ThreatCategory.HUMAN_ERROR),
    ("Power outage", ThreatCategory.TECHNICAL_FAILURE),
    ("Fire", ThreatCategory.NATURAL_DISASTER),
    ("Insider leaks", ThreatCategory.DATA_LOSS),
    ("Firewall rule bypass", ThreatCategory.UNAUTHORIZED_ACCESS),
    ("Firewall misconfiguration", ThreatCategory.HUMAN_ERROR),
    ("Accessibility lawsuit", ThreatCategory.OTHER),
    ("Alien invasion", ThreatCategory.OTHER),
])
def test_classify_threat(threat, category):
    assert classify_threat(threat) == category


def test_finance_example_scores(merged_finance_profile):
    scenarios = ScenarioGenerator().generate(merged_finance_profile)

    assert [s.asset for s in scenarios] == ["Customer DB", "Payment Gateway"]
    for scenario in scenarios:
        # external attack (4, 4), sensitive asset +1 impact, weak vulnerability +1 likelihood
        assert (scenario.likelihood, scenario.impact, scenario.risk_score) == (5, 5, 25)
        assert scenario.risk_level == RiskLevel.HIGH
        assert scenario.existing_measure is None
        assert scenario.recommended_controls == RECOMMENDED_CONTROLS[ThreatCategory.EXTERNAL_ATTACK]


def test_matching_existing_measure_lowers_likelihood():
    profile = _profile(
        information_assets=["Email server"],
        threats=["Malware"],
        vulnerabilities=["Outdated antivirus"],
        existing_measures=["Badge readers", "Email filtering"],
    )
    [scenario] = ScenarioGenerator().generate(profile)

    assert scenario.existing_measure == "Email filtering"
    assert (scenario.likelihood, scenario.impact) == (4, 4)
    assert scenario.risk_score == 16


def test_vulnerabilities_are_scoped_to_related_assets():
    profile = _profile(
        information_assets=["Customer database", "Web server"],
        threats=["Malware"],
        vulnerabilities=["Unencrypted database backups", "Unpatched web server", "Weak passwords"],
    )
    scenarios = ScenarioGenerator().generate(profile)
    pairs = {(s.asset, s.vulnerability) for s in scenarios}

    assert pairs == {
        ("Customer database", "Unencrypted database backups"),
        ("Customer database", "Weak passwords"),
        ("Web server", "Unpatched web server"),
        ("Web server", "Weak passwords"),
    }


def test_asset_without_related_vulnerability_falls_back_to_all():
    profile = _profile(
        information_assets=["Ledger", "Web server"],
        threats=["Fire"],
        vulnerabilities=["Unpatched web server"],
    )
    scenarios = ScenarioGenerator().generate(profile)

    assert {s.asset for s in scenarios} == {"Ledger", "Web server"}
    assert all(1 <= s.risk_score <= 25 for s in scenarios)


def test_no_scenarios_without_risk_inputs():
    profile = _profile(information_assets=["Ledger"], threats=["Fire"])
    assert ScenarioGenerator().generate(profile) == []


def test_generation_is_deterministic(merged_finance_profile):
    generator = ScenarioGenerator()
    assert generator.generate(merged_finance_profile) == generator.generate(merged_finance_profile)


def test_rejects_non_merged_profile():
    with pytest.raises(ValidationException):
        ScenarioGenerator().generate({"information_assets": ["x"]})
