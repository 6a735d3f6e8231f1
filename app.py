import asyncio
import logging
import sys

import config
from storage.manager import FlashcardStore, build_store

USAGE = "usage: python app.py [status|sync|export|import PATH|clear]"


async def run(store: FlashcardStore, command: str, args: list[str]) -> int:
    await store.init()

    if command == 'status':
        for deck in store.get_decks():
            stats = store.get_stats(deck['id'])
            logging.info(
                f"{deck['name']}: {stats['total']} cards "
                f"({stats['known']} known, {stats['review']} review, {stats['unknown']} unknown)"
            )
        if store.remote is not None:
            await store.remote.ping()

    elif command == 'sync':
        if store.sync is None:
            logging.warning("No remote store configured; nothing to sync")
            return 1
        await store.sync.wait_idle()
        if not await store.sync.sync_now():
            return 1

    elif command == 'export':
        print(store.export_data())

    elif command == 'import':
        if not args:
            print(USAGE, file=sys.stderr)
            return 2
        with open(args[0], encoding='utf-8') as f:
            if not store.import_data(f.read()):
                logging.error(f"Could not import {args[0]}: expected a JSON list of decks")
                return 1

    elif command == 'clear':
        store.clear_all()

    else:
        print(USAGE, file=sys.stderr)
        return 2

    return 0


async def main(argv: list[str]) -> int:
    logging.info("Running main")
    store = build_store(
        db_path=config.DB_PATH,
        remote_url=config.REMOTE_URL,
        remote_key=config.REMOTE_KEY,
        timeout=config.REMOTE_TIMEOUT,
        reset_delay=config.SYNC_RESET_DELAY,
    )
    command = argv[0] if argv else 'status'
    try:
        return await run(store, command, argv[1:])
    finally:
        await store.aclose()


if __name__ == '__main__':
    sys.exit(asyncio.run(main(sys.argv[1:])))
