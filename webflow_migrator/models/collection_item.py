from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from webflow_migrator.utils.slugs import slugify

ContentType = Literal["post", "event", "news", "team", "programme"]
Status = Literal["draft", "published"]

CONTENT_TYPES = ("post", "event", "news", "team", "programme")


class ImageReference(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    url: str = Field(..., min_length=1)
    alt: Optional[str] = None


class CollectionItem(BaseModel):
    """A Mnemo collection item, either freshly mapped or read back from the API.

    Rows returned by the API carry extra columns (``created_at``,
    ``updated_at``...) which are ignored.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    type: ContentType
    slug: str = Field(..., min_length=1)
    status: Status = "draft"
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, v: Any) -> Optional[str]:
        # Postgres serial ids come back as integers
        if v is None:
            return v
        return str(v)

    @field_validator("slug", mode="before")
    @classmethod
    def _ensure_slug(cls, v: Optional[str], info):  # type: ignore[override]
        if v is not None and str(v).strip():
            return v
        title = info.data.get("title")
        if isinstance(title, str) and title.strip():
            return slugify(title)
        return v

    @field_validator("data", mode="before")
    @classmethod
    def _data_or_empty(cls, v: Any) -> Dict[str, Any]:
        return v or {}

    def with_slug(self, slug: str) -> "CollectionItem":
        """Return a copy using ``slug`` both at the root and inside ``data``."""
        data = dict(self.data)
        if "slug" in data:
            data["slug"] = slug
        return self.model_copy(update={"slug": slug, "data": data})

    def to_payload(self) -> Dict[str, Any]:
        """Body accepted by ``POST``/``PUT /api/collection-items``."""
        return {
            "type": self.type,
            "status": self.status,
            "slug": self.slug,
            "title": self.title,
            "data": self.data,
        }
