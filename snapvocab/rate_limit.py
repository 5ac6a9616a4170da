"""Rate limiting for SnapVocab.

Uses slowapi to throttle writes to the word bank per client address.
The limit for saving cards is configurable through SNAPVOCAB_RATE_LIMIT.
"""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

CARD_WRITE_LIMIT = os.environ.get("SNAPVOCAB_RATE_LIMIT", "60/minute")

limiter = Limiter(key_func=get_remote_address)
