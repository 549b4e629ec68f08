"""
Centralized configuration for BloodLink.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# --- Intake sessions ---
SESSION_TIMEOUT_MINUTES = int(os.getenv("SESSION_TIMEOUT_MINUTES", "30"))
MAX_MESSAGE_LENGTH = int(os.getenv("MAX_MESSAGE_LENGTH", "10000"))

# --- Fallback LLM ---
FALLBACK_MODEL = os.getenv("FALLBACK_MODEL", "gemini-2.0-flash")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
MAX_HISTORY = int(os.getenv("MAX_HISTORY", "20"))

# --- Blood request storage ---
REQUEST_STORE = os.getenv("REQUEST_STORE", "memory")  # "memory" or "gcs"
GCS_BUCKET_NAME = os.getenv("GCS_BUCKET_NAME", "bloodlink_dev")

# --- Server ---
PORT = int(os.getenv("PORT", "8080"))
