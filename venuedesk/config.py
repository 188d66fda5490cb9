import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./venuedesk.db")

# Redis render cache - REDIS_URL takes precedence over the individual settings
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
RENDER_CACHE_TTL_SECONDS = int(os.getenv("RENDER_CACHE_TTL_SECONDS", "300"))

# Optional shared secret for /api/revalidate-cache. Unset = open endpoint.
REVALIDATION_SECRET = os.getenv("REVALIDATION_SECRET") or None

# Status change webhooks (n8n / Make / Zapier style receivers)
BOOKING_WEBHOOK_URL = os.getenv("BOOKING_WEBHOOK_URL")
FACILITY_WEBHOOK_URL = os.getenv("FACILITY_WEBHOOK_URL")
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET")
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))

# Budget for the update-and-notify operation before answering with a partial success
STATUS_UPDATE_TIMEOUT_SECONDS = float(os.getenv("STATUS_UPDATE_TIMEOUT_SECONDS", "25"))

# Cache-busting query marker appended to GET requests by the middleware
CACHE_BUST_PARAM = "_t"

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
FRONTEND_ORIGINS = os.getenv("FRONTEND_ORIGINS", FRONTEND_URL)

# Client side (venuedesk.client) defaults
API_BASE_URL = os.getenv("VENUEDESK_API_URL", "http://localhost:8000")
CLIENT_REQUEST_TIMEOUT_SECONDS = float(os.getenv("CLIENT_REQUEST_TIMEOUT_SECONDS", "30"))
CLIENT_STATE_FILE = os.getenv(
    "VENUEDESK_STATE_FILE", str(Path.home() / ".venuedesk" / "local_status.json")
)
