"""
Constants for the match ledger and Elo aggregation.
"""

# Elo update settings (fixed K, every participant starts from the same rating)
K_FACTOR = 32
DEFAULT_RATING = 1200
ELO_SCALE = 400

# Storage settings
KV_DEFAULT_KEY = 'matches'
DEFAULT_LEDGER_FILE = 'data/matches.json'
BACKEND_NAMES = ('kv', 'file', 'memory')

# KV retry settings - exponential backoff for transient connection errors
KV_MAX_RETRIES = 3
KV_RETRY_BASE_DELAY = 0.5  # seconds (initial delay)
KV_RETRY_MAX_DELAY = 4  # seconds (cap on delay between retries)
KV_REQUEST_TIMEOUT = 10  # seconds
