import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
DATA_DIR = BASE_DIR / os.getenv("DATA_DIR", "data")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")
STORE_FILE = DATA_DIR / os.getenv("STORE_FILE", "stock_store.json")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "stock_tracker.log")
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

# --- Identity / Store Namespace ---
APP_ID = os.getenv("APP_ID", "default-app-id")
USER_ID = os.getenv("USER_ID")

# --- Text Generation (Gemini) ---
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-preview-09-2025")
GEMINI_API_URL = os.getenv(
    "GEMINI_API_URL",
    f"https://generativelanguage.googleapis.com/v1beta/models/{GEMINI_MODEL}:generateContent",
)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Retry policy for the text-generation call.
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", "3"))
INITIAL_BACKOFF_MS = int(os.getenv("INITIAL_BACKOFF_MS", "1000"))

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")
SAVE_JSON_OUTPUT = os.getenv("SAVE_JSON_OUTPUT", "true").lower() in ("1", "true", "yes")

# --- Shared Business Logic ---
# Lead time (in days) before expiration at which a new item starts alarming.
DEFAULT_ALARM_DAYS = 7

# The first entry is the fallback for missing or unrecognized categories.
CATEGORIES = [
    "General",
    "Beverages",
    "Dry Goods",
    "Dairy",
    "Cold Cuts",
    "Cheeses",
    "Refrigerated",
    "Frozen",
    "Cleaning",
    "Other",
]
