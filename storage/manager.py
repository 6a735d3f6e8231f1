"""
Deck and card operations used by the UI layer.

Every mutation loads the collection from the local store, changes it in
memory and saves it back; the save hands the new snapshot to the sync engine.
Reads only touch the local store. With no remote client configured the store
runs local-only and the sync engine is absent.
"""

import json
import logging
from typing import Any

from database.local_store import Collection, LocalStore, decode_collection
from sync.client import RemoteStoreClient, eq_filter
from sync.engine import SyncEngine
from utils.constants import CARD_STATUSES, CARDS_TABLE, DECKS_TABLE, CardStatus
from utils.errors import DeserializeError, ValidationError
from utils.ids import new_id, utc_now_iso

logger = logging.getLogger(__name__)


class FlashcardStore:
    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStoreClient | None = None,
        reset_delay: float = 3.0,
    ) -> None:
        self.local = local
        self.remote = remote
        self.sync: SyncEngine | None = None
        if remote is not None:
            self.sync = SyncEngine(local, remote, reset_delay=reset_delay)
            local.on_save = self.sync.trigger

    async def init(self) -> None:
        """Bootstrap local data, seeding it from the remote store on first run."""
        decks = self.local.load()
        if decks:
            logger.info(f"Loaded {len(decks)} deck(s) from local storage")
            if self.sync is not None:
                self.sync.trigger(decks)
            return

        if self.sync is not None:
            remote_decks = await self.sync.fetch_remote()
            if remote_decks:
                self.local.save(remote_decks)
                logger.info(f"Loaded {len(remote_decks)} deck(s) from remote store")
                return

        self.local.save([])
        logger.info("Initialized empty storage")

    async def aclose(self) -> None:
        if self.sync is not None:
            await self.sync.flush()
        if self.remote is not None:
            await self.remote.close()

    def _load(self) -> Collection:
        return self.local.load() or []

    def _schedule_delete(self, *steps: tuple[str, str]) -> None:
        if self.sync is not None:
            self.sync.schedule_delete(*steps)

    # DECKS ==================================================

    def get_decks(self) -> Collection:
        return self._load()

    def get_deck(self, deck_id: str) -> dict[str, Any] | None:
        return _find(self._load(), deck_id)

    def create_deck(self, name: str) -> dict[str, Any]:
        decks = self._load()
        deck = {
            'id': new_id('deck'),
            'name': name,
            'createdAt': utc_now_iso(),
            'cards': [],
        }
        decks.append(deck)
        self.local.save(decks)
        return deck

    def update_deck_name(self, deck_id: str, name: str) -> dict[str, Any] | None:
        decks = self._load()
        deck = _find(decks, deck_id)
        if deck is None:
            return None
        deck['name'] = name
        self.local.save(decks)
        return deck

    def delete_deck(self, deck_id: str) -> dict[str, Any] | None:
        """Remove a deck and all of its cards. Returns the removed deck."""
        decks = self._load()
        deck = _find(decks, deck_id)
        if deck is None:
            return None
        self.local.save([d for d in decks if d['id'] != deck_id])
        self._schedule_delete(
            (CARDS_TABLE, eq_filter('deck_id', deck_id)),
            (DECKS_TABLE, eq_filter('id', deck_id)),
        )
        return deck

    # CARDS ==================================================

    def get_cards(self, deck_id: str) -> list[dict[str, Any]]:
        deck = self.get_deck(deck_id)
        return deck['cards'] if deck else []

    def get_card(self, deck_id: str, card_id: str) -> dict[str, Any] | None:
        return _find(self.get_cards(deck_id), card_id)

    def add_card(self, deck_id: str, front: str, back: str) -> dict[str, Any] | None:
        decks = self._load()
        deck = _find(decks, deck_id)
        if deck is None:
            return None
        card = {
            'id': new_id('card'),
            'front': front,
            'back': back,
            'status': CardStatus.UNKNOWN.value,
            'createdAt': utc_now_iso(),
        }
        deck['cards'].append(card)
        self.local.save(decks)
        return card

    def update_card(self, deck_id: str, card_id: str, front: str, back: str) -> dict[str, Any] | None:
        decks = self._load()
        card = _find(_cards_of(decks, deck_id), card_id)
        if card is None:
            return None
        card['front'] = front
        card['back'] = back
        self.local.save(decks)
        return card

    def delete_card(self, deck_id: str, card_id: str) -> dict[str, Any] | None:
        decks = self._load()
        deck = _find(decks, deck_id)
        card = _find(deck['cards'], card_id) if deck else None
        if card is None:
            return None
        deck['cards'] = [c for c in deck['cards'] if c['id'] != card_id]
        self.local.save(decks)
        self._schedule_delete((CARDS_TABLE, eq_filter('id', card_id)))
        return card

    def update_card_status(self, deck_id: str, card_id: str, status: str) -> dict[str, Any] | None:
        status = getattr(status, 'value', status)
        if status not in CARD_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(CARD_STATUSES)}, got {status!r}")

        decks = self._load()
        card = _find(_cards_of(decks, deck_id), card_id)
        if card is None:
            return None
        card['status'] = status
        self.local.save(decks)
        return card

    # DATA MANAGEMENT ========================================

    def get_stats(self, deck_id: str) -> dict[str, int]:
        cards = self.get_cards(deck_id)
        stats = {'total': len(cards)}
        for status in CardStatus:
            stats[status.value] = sum(1 for c in cards if c['status'] == status.value)
        return stats

    def export_data(self) -> str:
        return json.dumps(self._load(), indent=2, ensure_ascii=False)

    def import_data(self, json_data: str) -> bool:
        """Replace the collection with ``json_data``. False (and no change) if it is not a deck list."""
        try:
            decks = decode_collection(json_data, require_decks=True)
        except DeserializeError as e:
            logger.warning(f"Error importing data: {e}")
            return False
        self.local.save(decks)
        return True

    def clear_all(self) -> None:
        self.local.clear()
        self.local.save([])


def _find(items: list[dict[str, Any]], item_id: str) -> dict[str, Any] | None:
    return next((item for item in items if item.get('id') == item_id), None)


def _cards_of(decks: Collection, deck_id: str) -> list[dict[str, Any]]:
    deck = _find(decks, deck_id)
    return deck['cards'] if deck else []


def build_store(db_path=None, remote_url=None, remote_key=None, timeout=5.0, reset_delay=3.0) -> FlashcardStore:
    """Local-only store unless both remote settings are given."""
    local = LocalStore(db_path)
    remote = None
    if remote_url and remote_key:
        remote = RemoteStoreClient(remote_url, remote_key, timeout=timeout)
        logger.info(f"Remote replica enabled: {remote.base_url}")
    else:
        logger.info("Running in local-only mode")
    return FlashcardStore(local, remote, reset_delay=reset_delay)
