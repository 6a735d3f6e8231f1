"""
Background reconciliation of the local collection into the remote store.

One pass pushes every local deck and card: rows already present remotely are
updated, missing ones are inserted. Passes never delete remote rows; deletes
are pushed separately at the moment of local deletion. At most one pass is
in flight; a trigger arriving meanwhile is dropped, and the next local save
starts a fresh pass (or `flush`, for callers about to exit). Any transport
failure aborts the pass with status 'error' and nothing is retried.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from database.local_store import Collection, LocalStore, normalize_collection
from sync.client import RemoteStoreClient, eq_filter
from utils.constants import CARDS_TABLE, DECKS_TABLE, SyncStatus
from utils.errors import TransportError
from utils.ids import utc_now_iso

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStoreClient,
        reset_delay: float = 3.0,
    ) -> None:
        self.local = local
        self.remote = remote
        self.reset_delay = reset_delay
        self.last_sync_time: datetime | None = None
        self._status = SyncStatus.IDLE
        self._in_flight = False
        self._dirty = False
        self._listeners: list[Callable[[SyncStatus], Any]] = []
        self._tasks: set[asyncio.Task] = set()

    # STATUS =================================================

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def subscribe(self, listener: Callable[[SyncStatus], Any]) -> Callable[[], None]:
        """Call ``listener`` on every status change. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set_status(self, status: SyncStatus) -> None:
        self._status = status
        for listener in list(self._listeners):
            listener(status)

    def _reset_status(self) -> None:
        if self._status != SyncStatus.ERROR and not self._in_flight:
            self._set_status(SyncStatus.IDLE)

    # TRIGGERS ===============================================

    def trigger(self, snapshot: Collection | None = None) -> asyncio.Task | None:
        """Schedule a pass over ``snapshot`` (or the current local data).

        Returns the scheduled task, or None when the trigger was dropped.
        """
        if self._in_flight:
            self._dirty = True
            logger.debug("Sync pass already in flight; trigger dropped")
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; sync deferred to the next save")
            return None

        self._dirty = False
        # Read local state before the first await so the triggering write is included.
        if snapshot is None:
            snapshot = self.local.load()
        if snapshot is None:
            return None

        self._in_flight = True
        self._set_status(SyncStatus.SYNCING)
        return self._track(loop.create_task(self._run_pass(snapshot)))

    async def sync_now(self) -> bool:
        """Run a pass over the current local data and wait for it."""
        task = self.trigger()
        if task is None:
            return False
        return await task

    def schedule_delete(self, *steps: tuple[str, str]) -> asyncio.Task | None:
        """Best-effort remote delete of ``(table, query)`` steps, fired in the background.

        Steps run in order inside one task and stop at the first failure.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; remote delete {steps!r} skipped")
            return None
        return self._track(loop.create_task(self._delete(steps)))

    async def wait_idle(self) -> None:
        """Wait until every scheduled pass and delete has finished."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Background sync task failed: {result!r}")

    async def flush(self) -> None:
        """Wait for background work, then run the pass a dropped trigger skipped."""
        await self.wait_idle()
        while self._dirty:
            logger.info("Local data changed during the last pass; syncing again")
            await self.sync_now()
            await self.wait_idle()

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # PASS ===================================================

    async def _run_pass(self, snapshot: Collection) -> bool:
        try:
            await self.push(snapshot)
        except TransportError as e:
            logger.error(f"Sync error: {e}")
            self._set_status(SyncStatus.ERROR)
            return False
        else:
            self.last_sync_time = datetime.now(timezone.utc)
            self._set_status(SyncStatus.SUCCESS)
            logger.info(f"Synced {len(snapshot)} deck(s) to remote store")
            return True
        finally:
            self._in_flight = False
            asyncio.get_running_loop().call_later(self.reset_delay, self._reset_status)

    async def push(self, decks: Collection) -> None:
        """Upsert every deck and card of ``decks`` into the remote store."""
        remote_decks = await self.remote.select(DECKS_TABLE)
        remote_deck_ids = {row.get('id') for row in remote_decks}

        for deck in decks:
            now = utc_now_iso()
            if deck['id'] in remote_deck_ids:
                await self.remote.update(
                    DECKS_TABLE,
                    eq_filter('id', deck['id']),
                    {'name': deck['name'], 'updated_at': now},
                )
            else:
                await self.remote.insert(DECKS_TABLE, deck_to_row(deck, now))

            remote_cards = await self.remote.select(CARDS_TABLE, eq_filter('deck_id', deck['id']))
            remote_card_ids = {row.get('id') for row in remote_cards}

            for card in deck.get('cards', []):
                now = utc_now_iso()
                if card['id'] in remote_card_ids:
                    await self.remote.update(
                        CARDS_TABLE,
                        eq_filter('id', card['id']),
                        {
                            'front': card['front'],
                            'back': card['back'],
                            'status': card['status'],
                            'updated_at': now,
                        },
                    )
                else:
                    await self.remote.insert(CARDS_TABLE, card_to_row(card, deck['id'], now))

    async def _delete(self, steps: tuple[tuple[str, str], ...]) -> None:
        for table, query in steps:
            try:
                await self.remote.delete(table, query)
            except TransportError as e:
                logger.error(f"Error deleting {table}{query} from remote store: {e}")
                return

    # BOOTSTRAP ==============================================

    async def fetch_remote(self) -> Collection | None:
        """Load every remote deck with its cards. None if the remote is unreachable."""
        try:
            rows = await self.remote.select(DECKS_TABLE)
            decks = []
            for row in rows:
                cards = await self.remote.select(CARDS_TABLE, eq_filter('deck_id', row.get('id')))
                decks.append(row_to_deck(row, cards))
        except TransportError as e:
            logger.warning(f"Error loading from remote store: {e}")
            return None
        return normalize_collection(decks)


# ROW MAPPING ================================================

def deck_to_row(deck: dict[str, Any], updated_at: str) -> dict[str, Any]:
    return {
        'id': deck['id'],
        'name': deck['name'],
        'created_at': deck.get('createdAt'),
        'updated_at': updated_at,
    }


def card_to_row(card: dict[str, Any], deck_id: str, updated_at: str) -> dict[str, Any]:
    return {
        'id': card['id'],
        'deck_id': deck_id,
        'front': card['front'],
        'back': card['back'],
        'status': card['status'],
        'created_at': card.get('createdAt'),
        'updated_at': updated_at,
    }


def row_to_deck(row: dict[str, Any], card_rows: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        'id': row.get('id'),
        'name': row.get('name', ''),
        'createdAt': row.get('created_at'),
        'cards': [row_to_card(c) for c in card_rows],
    }


def row_to_card(row: dict[str, Any]) -> dict[str, Any]:
    return {
        'id': row.get('id'),
        'front': row.get('front', ''),
        'back': row.get('back', ''),
        'status': row.get('status'),
        'createdAt': row.get('created_at'),
    }
