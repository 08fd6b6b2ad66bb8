"""
Discovery of serialized records on disk.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from ..core.collection import RecordCollection
from ..core.exceptions import InvalidInputError
from ..core.models import SerializedRecord
from .graph import DependencyGraph


logger = logging.getLogger(__name__)


class RecordFinder:
    """
    Finds every ``*.yml`` record below a directory and returns them in
    dependency order.
    """

    pattern = "*.yml"

    def discover(self, directory: Union[str, Path]) -> RecordCollection:
        """
        Discover all records below ``directory``.

        A missing directory yields an empty collection. Files that cannot be
        read or parsed, or that carry no identity, are skipped with a warning.
        When two files share an identity the one parsed last wins; files are
        parsed in path order.
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.debug(f"Export directory not found: {directory}")
            return RecordCollection()

        records: Dict[str, SerializedRecord] = {}
        for path in sorted(directory.rglob(self.pattern)):
            if not path.is_file():
                continue
            record = self._parse(path)
            if record is None:
                continue
            if record.uuid in records:
                logger.debug(f"Duplicate export for {record.uuid}, using {path}")
            records[record.uuid] = record

        graph = DependencyGraph.from_records(records.values())
        ordered = [uuid for uuid in graph.sort() if uuid in records]

        logger.debug(
            f"Discovered {len(ordered)} exports in {directory} "
            f"({len(graph) - len(ordered)} missing dependencies)"
        )
        return RecordCollection(records[uuid] for uuid in ordered)

    def discover_with_dependencies(self, directory: Union[str, Path], uuid: str) -> RecordCollection:
        """
        One record and everything it depends on, dependencies first.

        Raises:
            RecordNotFoundError: If no export with that identity exists
        """
        return self.discover(directory).with_dependencies(uuid)

    def _parse(self, path: Path) -> Optional[SerializedRecord]:
        try:
            record = SerializedRecord.load(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read export {path}: {e}")
            return None
        except (yaml.YAMLError, InvalidInputError) as e:
            logger.warning(f"Could not parse export {path}: {e}")
            return None

        if not record.uuid:
            logger.warning(f"Skipping {path}: no _meta.uuid")
            return None
        return record


class ExportsCache:
    """
    Discovered collections keyed by source id.

    Entries live until ``clear()`` is called; a long running process must
    clear the cache to see changes on disk.
    """

    def __init__(self):
        self._collections: Dict[str, RecordCollection] = {}

    def has(self, key: str) -> bool:
        return key in self._collections

    def get(self, key: str) -> Optional[RecordCollection]:
        return self._collections.get(key)

    def set(self, key: str, collection: RecordCollection) -> None:
        self._collections[key] = collection

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._collections.clear()
        else:
            self._collections.pop(key, None)
