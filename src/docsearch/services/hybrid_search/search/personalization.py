"""
Per-user search history and the personalization hook.

Each user's history is a bounded ring buffer; the oldest entry is evicted
first. Only a user's own searches write to their buffer, so locking is
per user; the registry lock is held only while a user's slot is created.
"""

import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional

from ....shared import get_logger, get_settings
from ..indexing.tokenizer import STOPWORDS, clean_query, stem, tokenize
from ..models import SearchHistoryEntry


@dataclass
class _UserHistory:
    entries: Deque[SearchHistoryEntry]
    lock: threading.Lock = field(default_factory=threading.Lock)


class PersonalizationLayer:
    """
    Bounded per-user search history.

    Recording is best-effort: callers log and ignore failures so the
    search response is never affected.
    """

    def __init__(self, history_size: Optional[int] = None):
        self.logger = get_logger(__name__)
        self.history_size = get_settings().history_size if history_size is None else history_size

        self._users: Dict[str, _UserHistory] = {}
        self._registry_lock = threading.Lock()

        self.logger.info(f"Personalization layer initialized (history_size={self.history_size})")

    def _slot(self, user_id: str, create: bool = False) -> Optional[_UserHistory]:
        slot = self._users.get(user_id)
        if slot is None and create:
            with self._registry_lock:
                slot = self._users.get(user_id)
                if slot is None:
                    slot = _UserHistory(entries=deque(maxlen=self.history_size))
                    self._users[user_id] = slot
        return slot

    def record(self, user_id: str, query: str, result_count: int,
               timestamp: Optional[datetime] = None) -> SearchHistoryEntry:
        """Append one search to the user's history, evicting the oldest entry when full."""
        if not user_id:
            raise ValueError("user_id is required to record search history")

        entry = SearchHistoryEntry(
            query=query,
            timestamp=timestamp or datetime.now(timezone.utc),
            result_count=max(0, int(result_count)),
        )
        slot = self._slot(user_id, create=True)
        with slot.lock:
            slot.entries.append(entry)
        return entry

    def get_history(self, user_id: str) -> List[SearchHistoryEntry]:
        """History of one user, oldest first."""
        slot = self._slot(user_id)
        if slot is None:
            return []
        with slot.lock:
            return list(slot.entries)

    def has_history(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        slot = self._slot(user_id)
        return bool(slot and slot.entries)

    def frequent_terms(self, user_id: str, limit: int = 3,
                       exclude: Iterable[str] = ()) -> List[str]:
        """
        Most frequent query terms in the user's recent history.

        Terms whose stem is in `exclude` (usually the current query's
        stems) and stopwords are skipped. Ties go to the term used most
        recently.
        """
        if limit <= 0:
            return []

        excluded = {stem(term) for term in exclude}
        counts: Counter = Counter()
        last_seen: Dict[str, int] = {}

        for position, entry in enumerate(self.get_history(user_id)):
            for token in tokenize(clean_query(entry.query)):
                if token in STOPWORDS or stem(token) in excluded:
                    continue
                counts[token] += 1
                last_seen[token] = position

        ranked = sorted(counts, key=lambda t: (-counts[t], -last_seen[t], t))
        return ranked[:limit]

    def clear(self, user_id: Optional[str] = None) -> None:
        """Forget one user's history, or everybody's."""
        with self._registry_lock:
            if user_id is None:
                self._users.clear()
            else:
                self._users.pop(user_id, None)

    def get_stats(self) -> Dict[str, Any]:
        users = list(self._users.values())
        return {
            'users': len(users),
            'entries': sum(len(u.entries) for u in users),
            'history_size': self.history_size,
        }
