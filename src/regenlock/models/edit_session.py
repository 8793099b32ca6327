"""Edit session state for the section override engine."""

from enum import Enum

from pydantic import BaseModel, Field


class SectionState(str, Enum):
    """Display/edit state of one content section."""

    CLEAN = "clean"
    OVERRIDDEN = "overridden"
    EDITING = "editing"
    COMPARING = "comparing"


class EditSession(BaseModel):
    """The single open edit session (at most one exists at a time)."""

    item_id: str = Field(..., description="Item being edited")

    field: str = Field(
        default="content",
        description="Attribute being edited ('content' or 'name')"
    )

    draft: str = Field(..., description="Draft buffer, separate from the committed override")

    prior_state: SectionState = Field(
        ...,
        description="State to return to on cancel (clean or overridden)"
    )

    model_config = {"frozen": False}  # Draft changes while the user types
