"""LockedFacts: constraints carried from one generation into the next."""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class NumericFact(BaseModel):
    """An offer value such as '20%' or '$50'."""

    value: float = Field(..., ge=0, description="Numeric amount")

    kind: Literal["percent", "currency"] = Field(..., description="Unit kind")

    model_config = {"frozen": True}


DateFamily = Literal["month_name", "slash", "iso"]


class DateFact(BaseModel):
    """A calendar date recognized in text (year optional)."""

    month: int = Field(..., ge=1, le=12)

    day: int = Field(..., ge=1, le=31)

    year: Optional[int] = Field(default=None, description="Four-digit year if stated")

    family: DateFamily = Field(default="iso", description="Pattern family that matched")

    text: str = Field(default="", description="Matched substring")

    @model_validator(mode="after")
    def check_calendar(self) -> "DateFact":
        # Leap year used when the year is unknown so Feb 29 stays expressible
        date(self.year or 2000, self.month, self.day)
        return self

    def same_day(self, other: "DateFact") -> bool:
        """Compare month/day, and year only when both sides state one."""
        if (self.month, self.day) != (other.month, other.day):
            return False
        if self.year is not None and other.year is not None:
            return self.year == other.year
        return True

    model_config = {"frozen": True}


class LockedFacts(BaseModel):
    """Fact slots captured from one generation; absent slot means no constraint."""

    numeric: Optional[NumericFact] = Field(default=None, description="Offer value")

    restriction: Optional[bool] = Field(
        default=None,
        description="Whether the offer is restricted (e.g. new customers only)"
    )

    expiration: Optional[DateFact] = Field(default=None, description="Expiration date")

    cta: Optional[str] = Field(default=None, description="Call-to-action text")

    @field_validator("expiration", mode="before")
    @classmethod
    def coerce_expiration(cls, v):
        """Accept ISO strings and date objects for the expiration slot."""
        if isinstance(v, str):
            v = date.fromisoformat(v.strip())
        if isinstance(v, date):
            return DateFact(month=v.month, day=v.day, year=v.year, family="iso", text=v.isoformat())
        return v

    @field_validator("cta")
    @classmethod
    def blank_cta_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v is not None else None

    def is_empty(self) -> bool:
        return (
            self.numeric is None
            and self.restriction is None
            and self.expiration is None
            and self.cta is None
        )

    def merged_with(self, override: Optional["LockedFacts"]) -> "LockedFacts":
        """Return a copy where every slot set in `override` replaces ours."""
        if override is None:
            return self
        update = {
            name: getattr(override, name)
            for name in ("numeric", "restriction", "expiration", "cta")
            if getattr(override, name) is not None
        }
        return self.model_copy(update=update)

    model_config = {"frozen": True}
