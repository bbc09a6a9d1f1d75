import os

SECRET_KEY = "test-secret"

DATA_DIR = os.getenv("DATA_DIR", "data-test")

REMOTE_BACKEND = os.getenv("REMOTE_BACKEND", "none")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "academy_test"),
}

SUPABASE_URL = ""
SUPABASE_KEY = ""

GEMINI_API_KEY = ""
GEMINI_MODEL = "gemini-2.5-flash"

CONNECTIVITY_PROBE_URL = ""

TIMEZONE = "Asia/Colombo"
ACADEMY_NAME = "Test Academy"
DEFAULT_FEE_AMOUNT = 1000

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = False
