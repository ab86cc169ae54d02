# env vars + constants
import os

STORE_URL = os.getenv("STORE_URL", "http://localhost:54321").rstrip("/")
STORE_ANON_KEY = os.getenv("STORE_ANON_KEY", "")
STORE_TIMEOUT = float(os.getenv("STORE_TIMEOUT", "5.0"))
REDIRECT_URL = os.getenv("REDIRECT_URL", "http://localhost:8000/")
AUTH_PROVIDER = os.getenv("AUTH_PROVIDER", "discord")

ENTRIES_TABLE = os.getenv("ENTRIES_TABLE", "songs")
VOTES_TABLE = os.getenv("VOTES_TABLE", "votes")

MAX_VOTES_PER_USER = int(os.getenv("MAX_VOTES_PER_USER", "10"))
MAX_VOTES_PER_ENTRY = int(os.getenv("MAX_VOTES_PER_ENTRY", "3"))
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_DELAY_MS = int(os.getenv("RETRY_DELAY_MS", "1000"))

VOTING_OPEN = os.getenv("VOTING_OPEN", "true").strip().lower() in ("1", "true", "yes", "on")
AWARD_SHOW_DATETIME = os.getenv("AWARD_SHOW_DATETIME", "2026-03-07T11:00:00Z")
TWITCH_CHANNEL = os.getenv("TWITCH_CHANNEL", "kalden_berg")

PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
