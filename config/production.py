import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DATA_DIR = os.getenv("DATA_DIR", "data")

REMOTE_BACKEND = os.getenv("REMOTE_BACKEND", "supabase")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "academy_db"),
}

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

CONNECTIVITY_PROBE_URL = os.getenv("CONNECTIVITY_PROBE_URL", "")

TIMEZONE = os.getenv("TIMEZONE", "Asia/Colombo")
ACADEMY_NAME = os.getenv("ACADEMY_NAME", "Academy")
DEFAULT_FEE_AMOUNT = float(os.getenv("DEFAULT_FEE_AMOUNT", "1000"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
