# itinerary_optimizer/config.py
"""Environment-driven settings. Values are read once at import time."""
import os

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

LOG_LEVEL: str = os.getenv("ITINERARY_OPTIMIZER_LOG_LEVEL", "INFO").upper()

# Comma-separated list for the CORS middleware; "*" allows any origin.
ALLOWED_ORIGINS: str = os.getenv("ITINERARY_OPTIMIZER_ALLOWED_ORIGINS") or "*"

# Airport lookup
MAPBOX_ACCESS_TOKEN: str = os.getenv("MAPBOX_ACCESS_TOKEN", "")
AIRPORT_LOOKUP_TIMEOUT: float = float(os.getenv("AIRPORT_LOOKUP_TIMEOUT", "10.0"))
AIRPORT_SEARCH_RADIUS_KM: float = float(os.getenv("AIRPORT_SEARCH_RADIUS_KM", "300"))

# Pipeline
OPTIMIZE_TIMEOUT_SECONDS: float = float(os.getenv("OPTIMIZE_TIMEOUT_SECONDS", "30"))
OPTIMIZE_MAX_CANDIDATES: int = int(os.getenv("OPTIMIZE_MAX_CANDIDATES", "8"))

# Narrative notes
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
ITINERARY_NOTES_MODEL: str = os.getenv("ITINERARY_NOTES_MODEL", "gpt-4o-mini")
