"""
Pydantic models for view aggregation requests and results.
"""
from enum import Enum

from pydantic import BaseModel, Field


class UnknownViewError(ValueError):
    """Raised when a view name or value is not a known ViewKind."""
    pass


class ViewKind(str, Enum):
    """How recorded views are grouped for counting."""
    PAGES = "pages"
    REFERRERS = "referrers"
    USERAGENTS = "useragents"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"

    @classmethod
    def parse(cls, name: str) -> "ViewKind":
        """Look up a view by name, ignoring case and surrounding whitespace.

        Raises:
            UnknownViewError: If the name is not one of the known views
        """
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            raise UnknownViewError(f"Unknown view: {name!r}") from None


class AggregationRequest(BaseModel):
    """A view aggregation with optional, independently combinable filters.

    Empty strings and None both mean "no constraint".
    Date bounds are passed through to the storage engine uninterpreted
    (e.g. "2024-01-15" or "2024-01-15 08:00:00").
    """
    view: ViewKind = ViewKind.PAGES
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    url: str | None = None
    ref: str | None = None
    ua: str | None = None

    model_config = {"populate_by_name": True}

    def is_empty(self) -> bool:
        """Check if no filters are set."""
        return not self.active_filters()

    def active_filters(self) -> dict[str, str]:
        """Return the filters that constrain the result, keyed by request name."""
        values = {
            "from": self.from_,
            "to": self.to,
            "url": self.url,
            "ref": self.ref,
            "ua": self.ua,
        }
        return {k: v for k, v in values.items() if v}


class ResultRow(BaseModel):
    """One group of an aggregation: the group key and its view count."""
    key: str
    count: int
