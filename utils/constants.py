from enum import Enum

STORAGE_KEY = 'flashcards_data'

MAX_CARD_LENGTH = 5000

NO_CONTENT_HTML = '<p>No content</p>'
CONTAINER_OPEN = '<div class="markdown-content">'
CONTAINER_CLOSE = '</div>'

DECKS_TABLE = 'decks'
CARDS_TABLE = 'cards'


class CardStatus(str, Enum):
    UNKNOWN = 'unknown'
    REVIEW = 'review'
    KNOWN = 'known'


class SyncStatus(str, Enum):
    IDLE = 'idle'
    SYNCING = 'syncing'
    SUCCESS = 'success'
    ERROR = 'error'


CARD_STATUSES = tuple(s.value for s in CardStatus)
