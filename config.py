import os

from dotenv import load_dotenv

load_dotenv()

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# --- Gemini ---
# With an API key the Gemini Developer API is used, otherwise Vertex AI with
# Application Default Credentials.
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GOOGLE_CLOUD_LOCATION = os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# --- Export ---
BUCKET_NAME = os.getenv("GCS_BUCKET_NAME")

# --- Streaming ---
# Multiplier applied to the cosmetic pauses between stream events. 0 disables them.
STREAM_PACING = float(os.getenv("STREAM_PACING", "1.0"))

# --- Client side ---
CONVERSATION_STORE_PATH = os.getenv(
    "CONVERSATION_STORE_PATH",
    os.path.join(os.path.expanduser("~"), ".ai-slides", "storage.json"),
)
SERVICE_URL = os.getenv("SLIDES_SERVICE_URL", "http://localhost:8000")
