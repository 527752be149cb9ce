from typing import Any, Dict, Protocol

import structlog

logger = structlog.get_logger()


class BibliographyRegenerator(Protocol):
    """Rebuilds top-level bibliographic references from a text's metadata."""

    async def regenerate(self, text_id: str, metadata: Dict[str, Any]) -> None:
        ...


class NoOpBibliographyRegenerator:
    """Default regenerator. Does nothing, so references are never indexed."""

    async def regenerate(self, text_id: str, metadata: Dict[str, Any]) -> None:
        logger.warning("bibliography_regeneration_not_implemented", text_id=text_id)
