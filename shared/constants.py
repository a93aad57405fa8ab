"""Centralized constants"""

# Redis TTLs
REDIS_KEY_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days, runtime bookkeeping only

# Action execution timeouts
DEFAULT_ACTION_TIMEOUT_SECONDS = 30
MAX_ACTION_TIMEOUT_SECONDS = 300
MIN_ACTION_TIMEOUT_SECONDS = 1
DEFAULT_HTTP_TIMEOUT_SECONDS = 10

# Limits
MAX_NODES_PER_WORKFLOW = 200
MAX_KEYWORDS_PER_TRIGGER = 50
MAX_TEMPLATE_LENGTH = 2000

# Retry Configuration
MAX_ACTION_RETRY_ATTEMPTS = 3
INITIAL_RETRY_DELAY_SECONDS = 1
MAX_RETRY_DELAY_SECONDS = 60

# Retryable HTTP Status Codes
RETRYABLE_HTTP_STATUS_CODES = {500, 502, 503, 504, 408, 429}

# Channels
DEFAULT_CHANNEL_PROVIDER = "instagram"

# Delay units in seconds
DELAY_UNIT_SECONDS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 60 * 60,
    "days": 24 * 60 * 60,
}

# Message template fallbacks
DEFAULT_RESPONSE_MESSAGE = "Thanks for your message!"
DEFAULT_USERNAME_PLACEHOLDER = "there"

# Condition branch handles
TRUE_BRANCH = "true"
FALSE_BRANCH = "false"
