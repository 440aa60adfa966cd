import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

SUPABASE_CONFIG = {
    "url": os.getenv("SUPABASE_URL", ""),
    "anon_key": os.getenv("SUPABASE_ANON_KEY", ""),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

REALTIME_ENABLED = bool(int(os.getenv("REALTIME_ENABLED", "1")))

QR_DEFAULT_DURATION_MINUTES = int(os.getenv("QR_DEFAULT_DURATION_MINUTES", "15"))
EXPECTED_TIMEZONE = os.getenv("EXPECTED_TIMEZONE", "Africa/Accra")
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "30"))
