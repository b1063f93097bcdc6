import logging
import threading

from model import BlacklistEntry, normalize_name
from utils.time_utils import now_utc, to_epoch_ms, to_iso

logger = logging.getLogger(__name__)

SAMPLE_ENTRIES = [
    {
        "name": "malicious_user",
        "reason": "Security threat detected",
        "addedAt": "2024-01-15T10:00:00Z",
        "addedBy": "security_team",
        "category": "security",
    },
    {
        "name": "spam_bot",
        "reason": "Automated spam behavior",
        "addedAt": "2024-02-01T14:30:00Z",
        "addedBy": "admin",
        "category": "policy",
    },
    {
        "name": "test_user_blocked",
        "reason": "Test account for compliance testing",
        "addedAt": "2024-03-10T09:15:00Z",
        "addedBy": "compliance_team",
        "category": "compliance",
    },
    {
        "name": "deprecated_account",
        "reason": "Legacy account no longer supported",
        "addedAt": "2024-01-05T16:45:00Z",
        "addedBy": "system",
        "category": "policy",
    },
    {
        "name": "suspicious_actor",
        "reason": "Multiple policy violations",
        "addedAt": "2024-02-20T11:20:00Z",
        "addedBy": "moderator",
        "category": "security",
    },
]


class BlacklistStats:
    """Aggregate view over the registry.

    Attributes:
        total (int): Number of entries.
        categories (dict[str, int]): Entry count per category.
        last_updated (datetime): Latest ``addedAt``, or now when empty.
    """

    def __init__(self, total, categories, last_updated):
        self.total = total
        self.categories = categories
        self.last_updated = last_updated

    def to_dict(self):
        return {
            "total": self.total,
            "categories": dict(self.categories),
            "lastUpdated": to_epoch_ms(self.last_updated),
        }


class BlacklistStore:
    """In-memory registry of blacklisted names.

    The store is the only owner of the registry. Keys are always the
    normalized form of the entry name, so every lookup is case- and
    whitespace-insensitive. The store never rejects a write: ``add`` on an
    existing key overwrites it. Callers that must not overwrite use
    ``add_if_absent``, which checks and inserts atomically.
    """

    def __init__(self, seed: bool = True):
        self._entries: dict[str, BlacklistEntry] = {}
        self._lock = threading.Lock()
        if seed:
            self._load_sample_data()

    def _load_sample_data(self) -> None:
        for data in SAMPLE_ENTRIES:
            entry = BlacklistEntry.from_dict(data)
            self._entries[entry.key] = entry
        logger.debug(f"Seeded blacklist with {len(self._entries)} sample entries")

    def is_blacklisted(self, name: str) -> bool:
        return normalize_name(name) in self._entries

    def get_entry(self, name: str) -> BlacklistEntry | None:
        return self._entries.get(normalize_name(name))

    def list_all(self) -> list[BlacklistEntry]:
        with self._lock:
            return list(self._entries.values())

    def _new_entry(self, name, reason, added_by, category) -> BlacklistEntry:
        return BlacklistEntry(
            name=name,
            added_at=to_iso(now_utc()),
            reason=reason,
            added_by=added_by,
            category=category,
        )

    def add(
        self,
        name: str,
        reason: str | None = None,
        added_by: str | None = None,
        category: str | None = None,
    ) -> BlacklistEntry:
        """Insert an entry stamped with the current time, replacing any entry with the same key."""
        entry = self._new_entry(name, reason, added_by, category)
        with self._lock:
            replaced = entry.key in self._entries
            self._entries[entry.key] = entry
        if replaced:
            logger.info(f"Replaced blacklist entry '{entry.key}'")
        else:
            logger.info(f"Added blacklist entry '{entry.key}' (category={entry.effective_category})")
        return entry

    def add_if_absent(
        self,
        name: str,
        reason: str | None = None,
        added_by: str | None = None,
        category: str | None = None,
    ) -> BlacklistEntry | None:
        """Insert an entry unless its key is already present.

        The lookup and the insert happen under one lock acquisition, so two
        concurrent callers with the same name never both succeed. Returns the
        new entry, or None when the key was taken.
        """
        entry = self._new_entry(name, reason, added_by, category)
        with self._lock:
            if entry.key in self._entries:
                return None
            self._entries[entry.key] = entry
        logger.info(f"Added blacklist entry '{entry.key}' (category={entry.effective_category})")
        return entry

    def remove(self, name: str) -> bool:
        key = normalize_name(name)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.info(f"Removed blacklist entry '{key}'")
        return removed

    def stats(self) -> BlacklistStats:
        with self._lock:
            entries = list(self._entries.values())

        categories: dict[str, int] = {}
        for entry in entries:
            category = entry.effective_category
            categories[category] = categories.get(category, 0) + 1

        if entries:
            last_updated = max(e.get_added_datetime() for e in entries)
        else:
            last_updated = now_utc()
        return BlacklistStats(total=len(entries), categories=categories, last_updated=last_updated)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, name):
        return isinstance(name, str) and self.is_blacklisted(name)


_store: BlacklistStore | None = None
_store_lock = threading.Lock()


def get_blacklist_store(seed: bool = True) -> BlacklistStore:
    """Return the process-wide store, creating it on first use.

    ``seed`` only applies to the call that creates the store.
    """
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = BlacklistStore(seed=seed)
    return _store


def reset_blacklist_store() -> None:
    """Drop the process-wide store (testing only)."""
    global _store
    with _store_lock:
        _store = None
