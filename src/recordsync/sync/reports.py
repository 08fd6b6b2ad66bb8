"""
Reports returned by batch operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union


@dataclass
class ImportResult:
    """Post-import outcome for one identity."""
    uuid: str
    record_type: str
    success: bool
    message: str
    record_id: Optional[Union[int, str]] = None
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "record_type": self.record_type,
            "success": self.success,
            "message": self.message,
            "record_id": self.record_id,
            "label": self.label,
        }


@dataclass
class ImportReport:
    """Report of an import batch."""
    source_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    discovered: int = 0
    created: int = 0
    updated: int = 0

    results: List[ImportResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def ok(self) -> bool:
        return not self.errors and self.failed == 0

    def merge(self, other: "ImportReport") -> None:
        """Fold another report's counts, results and errors into this one."""
        self.discovered += other.discovered
        self.created += other.created
        self.updated += other.updated
        self.results.extend(other.results)
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source_id": self.source_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "discovered": self.discovered,
            "created": self.created,
            "updated": self.updated,
            "imported": self.imported,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors,
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        lines = [
            f"Import Report ({self.source_id})",
            f"  Duration: {(self.completed_at - self.started_at).total_seconds():.1f}s" if self.completed_at else "",
            f"  Discovered: {self.discovered}",
            f"  Created: {self.created}",
            f"  Updated: {self.updated}",
            f"  Verified: {self.imported}",
            f"  Missing after import: {self.failed}",
            f"  Errors: {len(self.errors)}",
        ]
        for error in self.errors:
            lines.append(f"    - {error}")
        return "\n".join(line for line in lines if line != "")


@dataclass
class ExportReport:
    """Report of an export run."""
    source_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    written: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source_id": self.source_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "written": self.written,
            "errors": self.errors,
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        lines = [
            f"Export Report ({self.source_id})",
            f"  Written: {len(self.written)}",
            f"  Errors: {len(self.errors)}",
        ]
        for error in self.errors:
            lines.append(f"    - {error}")
        return "\n".join(lines)
