import logging
import os
from dotenv import load_dotenv

load_dotenv()

DB_PATH = os.getenv(
    'FLASHCARDS_DB_PATH',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'flashcards.db'),
)

# Remote replica. Both must be set for hybrid mode, otherwise the store is local-only.
REMOTE_URL = os.getenv('REMOTE_URL')
REMOTE_KEY = os.getenv('REMOTE_KEY')

REMOTE_TIMEOUT = float(os.getenv('REMOTE_TIMEOUT', '5.0'))
SYNC_RESET_DELAY = float(os.getenv('SYNC_RESET_DELAY', '3.0'))

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
