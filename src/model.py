import logging
from datetime import datetime

from utils.time_utils import parse_iso

logger = logging.getLogger(__name__)

CATEGORIES = ("security", "compliance", "policy", "other")
DEFAULT_CATEGORY = "other"

# Placeholders used when an entry is added through the API without them
DEFAULT_REASON = "No reason provided"
DEFAULT_ADDED_BY = "api"


def normalize_name(name: str) -> str:
    """Return the registry key for a name (trimmed, lower-cased)."""
    return name.strip().lower()


def coerce_category(value) -> str:
    """Map a client-supplied category onto the known set.

    Unknown, empty or non-string values fall back to ``other`` instead of
    being rejected.
    """
    if isinstance(value, str) and value in CATEGORIES:
        return value
    if value:
        logger.debug(f"Unknown category {value!r}, using '{DEFAULT_CATEGORY}'")
    return DEFAULT_CATEGORY


class BlacklistEntry:
    """A named record marking a subject as blocked.

    Attributes:
        name (str): The blacklisted name as supplied (key is its normalized form).
        added_at (str): ISO-8601 timestamp set by the store on insertion.
        reason (str | None): Free-text justification.
        added_by (str | None): Who added the entry.
        category (str | None): One of ``CATEGORIES``.
    """

    def __init__(
        self,
        name: str,
        added_at: str,
        reason: str | None = None,
        added_by: str | None = None,
        category: str | None = None,
    ):
        self.name = name
        self.added_at = added_at
        self.reason = reason
        self.added_by = added_by
        self.category = category

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    @property
    def effective_category(self) -> str:
        return self.category or DEFAULT_CATEGORY

    def get_added_datetime(self) -> datetime:
        """Returns the insertion time as an aware datetime."""
        return parse_iso(self.added_at)

    def to_dict(self):
        entry_dict = {"name": self.name}
        if self.reason is not None:
            entry_dict["reason"] = self.reason
        entry_dict["addedAt"] = self.added_at
        if self.added_by is not None:
            entry_dict["addedBy"] = self.added_by
        if self.category is not None:
            entry_dict["category"] = self.category
        return entry_dict

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data["name"],
            added_at=data["addedAt"],
            reason=data.get("reason"),
            added_by=data.get("addedBy"),
            category=data.get("category"),
        )

    def __eq__(self, other):
        if not isinstance(other, BlacklistEntry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"BlacklistEntry(name={self.name!r}, category={self.category!r}, added_at={self.added_at!r})"
