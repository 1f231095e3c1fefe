from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class MigrationOutcome:
    """What happened to one source record during a run."""

    status: str
    source_id: Optional[str]
    slug: Optional[str] = None
    title: Optional[str] = None
    item_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    slug_attempts: int = 0
    relocated_images: int = 0
    image_failures: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def created(cls, source_id: Optional[str], slug: str, item_id: Optional[str], **kwargs: Any) -> "MigrationOutcome":
        return cls(status=CREATED, source_id=source_id, slug=slug, item_id=item_id, **kwargs)

    @classmethod
    def updated(cls, source_id: Optional[str], slug: str, item_id: Optional[str], **kwargs: Any) -> "MigrationOutcome":
        return cls(status=UPDATED, source_id=source_id, slug=slug, item_id=item_id, **kwargs)

    @classmethod
    def skipped(cls, source_id: Optional[str], slug: Optional[str], reason: str, **kwargs: Any) -> "MigrationOutcome":
        return cls(status=SKIPPED, source_id=source_id, slug=slug, reason=reason, **kwargs)

    @classmethod
    def failed(cls, source_id: Optional[str], slug: Optional[str], error: BaseException, **kwargs: Any) -> "MigrationOutcome":
        return cls(
            status=FAILED,
            source_id=source_id,
            slug=slug,
            error=str(error) or error.__class__.__name__,
            error_type=error.__class__.__name__,
            **kwargs,
        )

    @property
    def succeeded(self) -> bool:
        return self.status in (CREATED, UPDATED)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
