"""
Base repository interface for security template lookup.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from entities.security_template import SecurityTemplate
from common.exceptions import ResourceNotFoundException
from common.validation import normalize_text
from common.logging import get_logger

logger = get_logger("template_repository")


class BaseTemplateRepository(ABC):
    """
    Abstract read-only template catalog. The catalog itself is owned by an
    external store; the engine only fetches templates by industry key.
    """

    @abstractmethod
    async def get_by_industry(self, industry: str) -> Optional[SecurityTemplate]:
        """Retrieve the template published for an industry key."""
        pass

    @abstractmethod
    async def get_default(self) -> Optional[SecurityTemplate]:
        """Retrieve the catch-all default template."""
        pass

    @abstractmethod
    async def list_templates(self) -> List[SecurityTemplate]:
        """List every published template."""
        pass

    async def resolve_template(self, industry: str) -> SecurityTemplate:
        """
        Resolve the template that applies to a company's industry.

        Falls back to the default template when no industry-specific one is
        published.
        """
        template = await self.get_by_industry(industry)
        if template:
            logger.debug(f"Resolved template '{template.industry}' for industry '{industry}'")
            return template

        default = await self.get_default()
        if default:
            logger.info(
                f"No template for industry '{industry}', using default template '{default.industry}'"
            )
            return default

        raise ResourceNotFoundException(
            resource_type="SecurityTemplate",
            resource_id=industry,
            context={"industry": industry, "normalized_industry": normalize_text(industry)}
        )
