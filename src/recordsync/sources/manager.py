"""
Source registry built from configuration.
"""

import logging
import tempfile
from typing import Dict, List, Optional

from ..core.exceptions import RecordNotFoundError
from .source import Source


logger = logging.getLogger(__name__)

TMP_SOURCE_ID = "_tmp"


class SourceManager:
    """Loads sources and resolves which source holds a record's export."""

    def __init__(self, sources: List[Source], default_source_id: str = ""):
        self._sources: Dict[str, Source] = {}
        for source in sources:
            self._sources[source.id] = source
        self.default_source_id = default_source_id

    @classmethod
    def from_settings(cls, settings) -> "SourceManager":
        base_dir = settings.base_dir
        sources = [Source.from_dict(data, base_dir) for data in settings.get_sources()]
        return cls(sources, settings.default_source())

    def all(self) -> List[Source]:
        return list(self._sources.values())

    def enabled(self) -> List[Source]:
        return [s for s in self._sources.values() if s.enabled]

    def load(self, source_id: str) -> Optional[Source]:
        return self._sources.get(source_id)

    def get(self, source_id: str) -> Source:
        """
        Get a source by id.

        Raises:
            RecordNotFoundError: If no source has that id
        """
        source = self.load(source_id)
        if source is None:
            raise RecordNotFoundError(f"Source not found: {source_id}")
        return source

    def tmp_source(self) -> Source:
        """Disabled scratch source in the system temp directory."""
        return Source(
            id=TMP_SOURCE_ID,
            label="Temporary Storage",
            directory=tempfile.gettempdir(),
            enabled=False,
        )

    def default_source(self) -> Source:
        """The configured default source, or the temp source if it is missing."""
        source = self.load(self.default_source_id)
        if source is None:
            logger.warning(
                f"Default source '{self.default_source_id}' not found, using temporary storage"
            )
            source = self.tmp_source()
        return source

    def resolve_source(self, record_type: str, bundle: str, uuid: str) -> Optional[Source]:
        """First enabled source that contains an export of the record."""
        for source in self.enabled():
            if source.export_exists(record_type, bundle, uuid):
                return source
        return None
