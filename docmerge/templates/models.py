from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from docmerge.fields.models import Field
from docmerge.registry.models import SourceDocument


class TemplateCategory(str, Enum):
    PURCHASE = "purchase"
    LEASE = "lease"
    SERVICE = "service"
    WARRANTY = "warranty"
    CUSTOM = "custom"


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TemplateRecord:
    """Persisted template shape: metadata and fields, never merged bytes."""

    id: str
    name: str
    category: TemplateCategory = TemplateCategory.CUSTOM
    description: str = ""
    files: list[SourceDocument] = field(default_factory=list)
    fields: list[Field] = field(default_factory=list)
    status: TemplateStatus = TemplateStatus.DRAFT
    body_text: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
