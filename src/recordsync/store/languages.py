"""
Locale configuration of the live system.
"""

from typing import Iterable, List, Optional


class LanguageManager:
    """
    Knows the live system's default locale and which locales it supports.

    ``installing`` is set while the live system itself is being set up, during
    which an export's default locale is trusted over the configured one.
    """

    def __init__(
        self,
        default_langcode: str = "en",
        known_langcodes: Optional[Iterable[str]] = None,
        installing: bool = False,
    ):
        self.default_langcode = default_langcode
        known = list(known_langcodes or [])
        if default_langcode not in known:
            known.insert(0, default_langcode)
        self._known = known
        self.installing = installing

    def get_default_langcode(self) -> str:
        return self.default_langcode

    def known_langcodes(self) -> List[str]:
        return list(self._known)

    def is_known(self, langcode: str) -> bool:
        return langcode in self._known

    def __repr__(self) -> str:
        return (
            f"LanguageManager(default={self.default_langcode!r}, "
            f"known={self._known!r}, installing={self.installing})"
        )
