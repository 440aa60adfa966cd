import os

SECRET_KEY = "test-secret"

SUPABASE_CONFIG = {
    "url": os.getenv("SUPABASE_URL", "http://localhost:54321"),
    "anon_key": os.getenv("SUPABASE_ANON_KEY", "test-anon-key"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

REALTIME_ENABLED = False

QR_DEFAULT_DURATION_MINUTES = 15
EXPECTED_TIMEZONE = "Africa/Accra"
CACHE_TTL_SECONDS = 0.0
