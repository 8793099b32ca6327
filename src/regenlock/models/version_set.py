"""VersionSet and ContentItem models (immutable generation snapshots)."""

from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


# Item ids participating in a bulk action. Never owned by a VersionSet.
SelectionSet = FrozenSet[str]


class ContentItem(BaseModel):
    """One generated slot (logo concept, job-post section, promo field) plus its edit overlay."""

    id: str = Field(
        ...,
        description="Stable identifier, unique within its version set (never an index)"
    )

    key: str = Field(
        ...,
        description="Generator slot key (e.g. 'headline', 'socialPosts.0.callToAction')"
    )

    title: str = Field(
        default="",
        description="Human-readable label for the slot"
    )

    generated: str = Field(
        ...,
        description="Immutable text produced by the upstream generator"
    )

    edited: Optional[str] = Field(
        default=None,
        description="User override; None means 'use generated'"
    )

    edited_flags: Dict[str, bool] = Field(
        default_factory=dict,
        description="Which attributes the user touched (e.g. name, content, favorite)"
    )

    favorite: bool = Field(
        default=False,
        description="User favorite marker"
    )

    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Generator side data (image_url, prompt, palette, ...), read-only"
    )

    created_at: datetime = Field(..., description="When the item was generated")

    updated_at: datetime = Field(..., description="Last mutation of this item")

    @field_validator("edited")
    @classmethod
    def normalize_noop_edit(cls, v: Optional[str], info) -> Optional[str]:
        """An override equal to the generated text is not an override."""
        if v is not None and v == info.data.get("generated"):
            return None
        return v

    @property
    def has_visible_edit(self) -> bool:
        """True iff the override is non-blank and differs from generated."""
        if self.edited is None or not self.edited.strip():
            return False
        return self.edited != self.generated

    @property
    def effective(self) -> str:
        """Display/export value: the override when meaningful, else generated."""
        return self.edited if self.has_visible_edit else self.generated

    @property
    def slot(self) -> str:
        """Last segment of the slot key ('socialPosts.0.callToAction' -> 'callToAction')."""
        return self.key.rsplit(".", 1)[-1]

    model_config = {"frozen": True}


class VersionSet(BaseModel):
    """One immutable batch of generated content plus the brief that produced it."""

    id: str = Field(..., description="Opaque identifier, never reused")

    created_at: datetime = Field(..., description="Creation timestamp")

    brief_snapshot: Dict[str, Any] = Field(
        default_factory=dict,
        description="Frozen copy of the inputs used to generate this set"
    )

    items: Tuple[ContentItem, ...] = Field(
        default=(),
        description="Items in canonical display order"
    )

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        """Find an item by id within this set."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def item_ids(self) -> Tuple[str, ...]:
        return tuple(item.id for item in self.items)

    model_config = {"frozen": True}
