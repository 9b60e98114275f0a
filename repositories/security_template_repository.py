"""
In-memory security template catalog seeded with the built-in industry templates.
"""

from typing import Dict, Iterable, List, Optional

from repositories.base import BaseTemplateRepository
from entities.security_template import SecurityTemplate
from common.exceptions import BusinessLogicException
from common.validation import normalize_text
from common.logging import get_logger

logger = get_logger("security_template_repository")


BUILTIN_TEMPLATES: List[SecurityTemplate] = [
    SecurityTemplate(
        industry="technology",
        name="Software Development Company",
        description="Template for companies building software products and applications",
        information_assets=[
            "Source code",
            "Code repositories",
            "Customer credentials",
            "Technical documentation",
            "Intellectual property",
            "Development servers",
            "Test environments",
        ],
        threats=[
            "Source code theft",
            "Malicious code injection",
            "Credential exposure",
            "Social engineering attacks",
            "Loss of intellectual property",
        ],
        vulnerabilities=[
            "Inadequate repository management",
            "Lack of code review",
            "Insecure credential storage",
            "Lack of security awareness",
            "Insufficient access control",
        ],
        existing_measures=[
            "Repository access control",
            "Firewalls",
            "Antivirus",
            "Two-factor authentication",
            "Code reviews",
        ],
    ),
    SecurityTemplate(
        industry="ecommerce",
        name="Online Service / E-commerce",
        description="Template for online shops and e-commerce platforms",
        information_assets=[
            "Customer database",
            "Payment card information",
            "Website",
            "Payment processing platform",
            "Product catalog",
            "Market analytics",
        ],
        threats=[
            "Personal data breach",
            "Card fraud",
            "DDoS attacks",
            "SQL injection",
            "Phishing",
        ],
        vulnerabilities=[
            "Insufficient encryption of payment data",
            "Inadequate input validation on the website",
            "Limited infrastructure capacity",
            "Inadequate access controls",
            "Missing security patches",
        ],
        existing_measures=[
            "Encryption of sensitive data",
            "Web application firewall",
            "Cloud scaling capacity",
            "Periodic security audits",
            "PCI-DSS compliance",
        ],
    ),
    SecurityTemplate(
        industry="professional_services",
        name="Consulting / Professional Services",
        description="Template for consulting and professional services firms",
        information_assets=[
            "Confidential client data",
            "Reports and analyses",
            "Professional email",
            "Contract documents",
            "Proprietary methodologies",
        ],
        threats=[
            "Loss of confidentiality",
            "Targeted attacks",
            "Identity impersonation",
            "Device loss",
            "Insider leaks",
        ],
        vulnerabilities=[
            "Lack of confidentiality policies",
            "Weak email and communication security",
            "Lack of security awareness",
            "Inadequate mobile device management",
            "Inadequate access controls",
        ],
        existing_measures=[
            "Non-disclosure agreements",
            "Encrypted communications",
            "Security training",
            "Mobile device management",
            "Multi-factor authentication",
        ],
    ),
    SecurityTemplate(
        industry="general",
        name="Small Business (Generic)",
        description="Generic template for small businesses in any sector",
        information_assets=[
            "Customer data",
            "Financial information",
            "Email",
            "Administrative documents",
            "Computers and mobile devices",
        ],
        threats=[
            "Malware",
            "Device theft",
            "Phishing",
            "Data loss",
            "Unauthorized access",
        ],
        vulnerabilities=[
            "Lack of data backups",
            "Missing software updates",
            "Weak passwords",
            "Lack of encryption",
            "Absence of basic controls",
        ],
        existing_measures=[
            "Antivirus",
            "Passwords",
            "Basic data backup",
            "Basic firewall",
            "Device locking",
        ],
        is_default=True,
    ),
]


class InMemoryTemplateRepository(BaseTemplateRepository):
    """
    Template catalog held in memory, keyed by normalized industry.
    """

    def __init__(
        self,
        templates: Optional[Iterable[SecurityTemplate]] = None,
        include_builtin: bool = True,
    ):
        self._templates: Dict[str, SecurityTemplate] = {}
        if include_builtin:
            for template in BUILTIN_TEMPLATES:
                self._add(template)
        for template in templates or []:
            self._add(template)

    def _add(self, template: SecurityTemplate) -> None:
        key = normalize_text(template.industry)
        if template.is_default:
            current_default = self._find_default()
            if current_default and normalize_text(current_default.industry) != key:
                raise BusinessLogicException(
                    detail="Only one default security template may be published",
                    error_code="DUPLICATE_DEFAULT_TEMPLATE",
                    context={"existing": current_default.industry, "new": template.industry}
                )
        self._templates[key] = template

    def _find_default(self) -> Optional[SecurityTemplate]:
        for template in self._templates.values():
            if template.is_default:
                return template
        return None

    async def get_by_industry(self, industry: str) -> Optional[SecurityTemplate]:
        return self._templates.get(normalize_text(industry))

    async def get_default(self) -> Optional[SecurityTemplate]:
        return self._find_default()

    async def list_templates(self) -> List[SecurityTemplate]:
        return sorted(self._templates.values(), key=lambda t: (t.industry, t.name))


def create_template_repository(
    templates: Optional[Iterable[SecurityTemplate]] = None,
) -> InMemoryTemplateRepository:
    """Factory function to create the in-memory template catalog."""
    repository = InMemoryTemplateRepository(templates)
    logger.info(f"Template catalog ready with {len(repository._templates)} templates")
    return repository
