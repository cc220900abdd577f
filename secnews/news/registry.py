"""Load feed sources from YAML configuration."""

import logging
from pathlib import Path
from typing import Optional

import yaml

from .errors import SourceNotFoundError
from .models import Source, SourceCategory

logger = logging.getLogger(__name__)


class SourceRegistry:
    """
    Static lookup of configured feed sources.

    Sources keep the order they were declared in; lookups never mutate.
    """

    def __init__(self, sources: list[Source]):
        self._sources: dict[str, Source] = {}
        for source in sources:
            if source.id in self._sources:
                raise ValueError(f"Duplicate source id: {source.id}")
            self._sources[source.id] = source

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._sources

    def list_all(self) -> list[Source]:
        return list(self._sources.values())

    def list_enabled(self) -> list[Source]:
        """Enabled sources in declaration order."""
        return [s for s in self._sources.values() if s.enabled]

    def by_category(self, category: SourceCategory) -> list[Source]:
        return [s for s in self.list_enabled() if s.category == category]

    def get_by_id(self, source_id: str) -> Source:
        """
        Look up a source by id.

        Disabled sources are returned too; callers check ``enabled``.

        Raises:
            SourceNotFoundError: if no source has this id.
        """
        try:
            return self._sources[source_id]
        except KeyError:
            raise SourceNotFoundError(source_id) from None


def load_registry(path: Optional[Path] = None) -> SourceRegistry:
    """
    Load sources from a YAML file.

    Args:
        path: Path to sources.yaml. Defaults to the packaged config.

    Returns:
        SourceRegistry with every declared source, enabled or not.
    """
    if path is None:
        path = Path(__file__).parent.parent / "config" / "sources.yaml"

    if not path.exists():
        logger.warning("[SOURCES] Source file not found: %s", path)
        return SourceRegistry([])

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    sources = []
    for source_id, entry in (data.get("sources") or {}).items():
        try:
            category = SourceCategory(entry.get("category", "news"))
        except ValueError:
            raise ValueError(
                f"Unknown category for source {source_id}: {entry.get('category')}"
            ) from None

        sources.append(
            Source(
                id=source_id,
                name=entry["name"],
                feed_url=entry["feed_url"],
                website_url=entry.get("website_url", ""),
                description=entry.get("description", ""),
                category=category,
                enabled=entry.get("enabled", True),
                default_image=entry.get("default_image"),
            )
        )

    registry = SourceRegistry(sources)
    logger.info(
        "[SOURCES] Loaded %d sources (%d enabled) from %s",
        len(registry),
        len(registry.list_enabled()),
        path.name,
    )
    return registry
