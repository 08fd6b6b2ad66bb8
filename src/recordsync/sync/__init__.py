"""
Import, export, status and pruning of serialized records.
"""

from .exporter import Exporter
from .factory import ExportableFactory
from .importer import Importer
from .pruner import Pruner
from .reports import ExportReport, ImportReport, ImportResult
from .serializer import RecordSerializer
from .status import StatusResolver
from .updater import RecordUpdater

__all__ = [
    "ExportReport",
    "ExportableFactory",
    "Exporter",
    "ImportReport",
    "ImportResult",
    "Importer",
    "Pruner",
    "RecordSerializer",
    "RecordUpdater",
    "StatusResolver",
]
