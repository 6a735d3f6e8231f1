"""
Local, authoritative persistence of the whole deck collection.

The collection is one JSON array stored under a single key. Reads never
raise: a missing, unreadable or corrupt blob is reported as ``None`` so the
app stays usable. Writes raise ``PersistError`` and, once durable, hand the
post-write snapshot to the ``on_save`` hook (the sync engine's trigger).
"""

import json
import logging
import sqlite3
from typing import Any, Callable

import database.database as db
from utils.constants import CARD_STATUSES, CardStatus, STORAGE_KEY
from utils.errors import DeserializeError, PersistError

logger = logging.getLogger(__name__)

Collection = list[dict[str, Any]]


class LocalStore:
    def __init__(
        self,
        db_path: str | None = None,
        key: str = STORAGE_KEY,
        on_save: Callable[[Collection], Any] | None = None,
    ) -> None:
        self.db_path = db_path
        self.key = key
        self.on_save = on_save
        try:
            db.init_db(db_path)
        except sqlite3.Error as e:
            # Reads will come back empty and saves will raise PersistError.
            logger.warning(f"Local storage unavailable: {e}")

    def load(self) -> Collection | None:
        try:
            raw = db.get_value(self.key, self.db_path)
        except sqlite3.Error as e:
            logger.warning(f"Error reading local storage: {e}")
            return None
        if raw is None:
            return None
        try:
            return decode_collection(raw)
        except DeserializeError as e:
            logger.warning(f"Ignoring unreadable local data: {e}")
            return None

    def save(self, decks: Collection) -> None:
        payload = json.dumps(decks, ensure_ascii=False)
        try:
            db.set_value(self.key, payload, self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Error saving to local storage: {e}")
            raise PersistError(str(e)) from e

        if self.on_save is not None:
            self.on_save(json.loads(payload))

    def clear(self) -> None:
        try:
            db.delete_value(self.key, self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Error clearing local storage: {e}")
            raise PersistError(str(e)) from e


# DECODING ===================================================

def decode_collection(raw: str, require_decks: bool = False) -> Collection:
    """Parse a serialized collection. Raises DeserializeError on any shape problem.

    With ``require_decks`` a non-empty list whose every entry is malformed is
    rejected too, instead of decoding to an empty collection.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DeserializeError(f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise DeserializeError(f"expected a list of decks, got {type(data).__name__}")
    decks = normalize_collection(data)
    if require_decks and data and not decks:
        raise DeserializeError(f"none of the {len(data)} deck entries has an id")
    return decks


def normalize_collection(data: list[Any]) -> Collection:
    decks = []
    for entry in data:
        deck = normalize_deck(entry)
        if deck is not None:
            decks.append(deck)
    return decks


def normalize_deck(entry: Any) -> dict[str, Any] | None:
    if not isinstance(entry, dict) or not entry.get('id'):
        logger.warning(f"Dropping malformed deck entry: {entry!r:.80}")
        return None

    deck = dict(entry)
    deck.setdefault('name', '')
    deck.setdefault('createdAt', None)

    cards = deck.get('cards')
    if not isinstance(cards, list):
        cards = []
    deck['cards'] = [c for c in (normalize_card(c) for c in cards) if c is not None]
    return deck


def normalize_card(entry: Any) -> dict[str, Any] | None:
    if not isinstance(entry, dict) or not entry.get('id'):
        logger.warning(f"Dropping malformed card entry: {entry!r:.80}")
        return None

    card = dict(entry)
    card.setdefault('front', '')
    card.setdefault('back', '')
    card.setdefault('createdAt', None)
    if card.get('status') not in CARD_STATUSES:
        card['status'] = CardStatus.UNKNOWN.value
    return card
