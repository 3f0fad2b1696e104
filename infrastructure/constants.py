"""
Constants Module - Centralized dispatch configuration values
============================================================

PURPOSE: Single source of truth for constants shared by bookings, partners and notifications
PATTERN: Modular constants organized by category
SCOPE: Application-wide default values (overridable through settings where noted)
"""

# Partner Directory Constants
PARTNER_ROLE = 'partner'
PARTNER_STATUS_ACTIVE = 'active'
AVAILABILITY_ONLINE = 'online'

# Defaults applied when a directory record omits a ranking field
DEFAULT_PARTNER_STATUS = PARTNER_STATUS_ACTIVE
DEFAULT_RATING = 0.0
DEFAULT_COMPLETED_JOBS = 0
DEFAULT_PRICE_MULTIPLIER = 1.0

# Matching Constants
DEFAULT_SORT_KEY = 'rating'
MATCH_ENRICHMENT_CONCURRENCY = 16  # Max in-flight application lookups per match

# Notification Constants
DEFAULT_DEEP_LINK = '/'
NOTIFY_FANOUT_CONCURRENCY = 16  # Max in-flight dispatches per fan-out
NOTIFY_CLEANUP_ATTEMPTS = 2  # Initial cleanup write plus one conflict retry

# Timing Constants
OPERATION_TIMEOUT_SECONDS = 10.0
DEFAULT_TIMEZONE = 'Asia/Kolkata'

# Storage Constants
DOCUMENTS_FILE = 'data/documents.json'  # Local stand-in for the managed document database

# Logger names shared by the dedicated engine log file
ENGINE_LOGGER_NAMES = (
    'MatchingEngine',
    'NotificationDispatcher',
    'BookingService',
)
