# app/settings.py
import os

# --- Storage ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./catalog.db")

# --- Change feed (unset disables cross-process notifications) ---
REDIS_URL = os.getenv("REDIS_URL")
CHANGE_CHANNEL = os.getenv("CATALOG_CHANGE_CHANNEL", "catalog:changes")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Query / mutation limits ---
PAGE_SIZE = int(os.getenv("CATALOG_PAGE_SIZE", "20"))
MAX_BATCH_SIZE = int(os.getenv("CATALOG_MAX_BATCH_SIZE", "500"))
SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))
