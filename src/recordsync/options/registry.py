"""
Registry of option plugins.
"""

from typing import Dict, List, Optional

from ..store.models import LiveRecord
from .base import MetaOption


class MetaOptionRegistry:
    """Option plugins keyed by id, in registration order."""

    def __init__(self, options: Optional[List[MetaOption]] = None):
        self._options: Dict[str, MetaOption] = {}
        for option in options or []:
            self.register(option)

    def register(self, option: MetaOption) -> None:
        self._options[option.option_id] = option

    def get(self, option_id: str) -> Optional[MetaOption]:
        return self._options.get(option_id)

    def all(self) -> List[MetaOption]:
        return list(self._options.values())

    def applicable(self, record: LiveRecord) -> List[MetaOption]:
        return [option for option in self._options.values() if option.applies(record)]

    def __len__(self) -> int:
        return len(self._options)
