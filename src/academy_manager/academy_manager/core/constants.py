"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# date.weekday(): Monday=0 ... Saturday=5, Sunday=6
CLASS_WEEKDAYS = frozenset({5, 6, 0})

GENERAL_CLASS_IDS = frozenset({"general", "All"})
GENERAL_CLASS_ID = "general"

ABSENCE_ALERT_THRESHOLD = 2

COUNTRY_CODE = "94"
WHATSAPP_BASE_URL = "https://wa.me"

OFFLINE_QUEUE_KEY = "offline_queue"
PROMOTION_MARKER_PREFIX = "promoted_"
PROMOTION_WINDOW_LAST_DAY = 15
FINAL_GRADE = 11
COMPLETED_GRADE = "Completed"

LEGACY_BILLING_NOTE_PREFIX = "Billing Month:"
BILLING_OPTIONS_COUNT = 8
BILLING_OPTIONS_MONTHS_BACK = 3
REMINDER_COOLDOWN_HOURS = 24

DEFAULT_CLASS_DURATION_MINUTES = 60
DEFAULT_FEE_AMOUNT = 1000
DEFAULT_RECENT_EXAMS = 5

AI_UNAVAILABLE_MESSAGE = "AI Service Unavailable (Key Missing)."
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

BACKUP_VERSION = 1
