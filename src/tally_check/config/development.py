import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

SUPABASE_CONFIG = {
    "url": os.getenv("SUPABASE_URL", "http://localhost:54321"),
    "anon_key": os.getenv("SUPABASE_ANON_KEY", ""),
}

DEBUG = bool(int(os.getenv("DEBUG", "1")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Subscribe to backend row changes for the notification bell.
REALTIME_ENABLED = bool(int(os.getenv("REALTIME_ENABLED", "0")))

QR_DEFAULT_DURATION_MINUTES = int(os.getenv("QR_DEFAULT_DURATION_MINUTES", "15"))
EXPECTED_TIMEZONE = os.getenv("EXPECTED_TIMEZONE", "Africa/Accra")
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "30"))
