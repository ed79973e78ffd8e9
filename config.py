"""AdGen configuration — provider credentials, model names, paths, limits."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "outputs")
VIDEO_DIR = OUTPUT_DIR / "videos"
UPLOAD_DIR = OUTPUT_DIR / "uploads"
STATIC_DIR = ROOT_DIR / "static"

# ---------------------------------------------------------------------------
# Provider API key
#
# GOOGLE_API_KEY is preferred; API_KEY is accepted for older .env files.
# ---------------------------------------------------------------------------
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "") or os.getenv("API_KEY", "")

# ---------------------------------------------------------------------------
# Model names (centralized so they're easy to update)
# ---------------------------------------------------------------------------
CREATIVE_MODEL = os.getenv("ADGEN_CREATIVE_MODEL", "gemini-2.5-flash")
IMAGE_MODEL = os.getenv("ADGEN_IMAGE_MODEL", "imagen-4.0-generate-001")
VIDEO_MODEL = os.getenv("ADGEN_VIDEO_MODEL", "veo-2.0-generate-001")

CREATIVE_TEMPERATURE = float(os.getenv("ADGEN_CREATIVE_TEMPERATURE", "0.7"))

IMAGE_ASPECT_RATIO = os.getenv("ADGEN_IMAGE_ASPECT_RATIO", "16:9")
IMAGE_MIME_TYPE = "image/jpeg"

# ---------------------------------------------------------------------------
# Video polling
#
# VIDEO_POLL_MAX_WAIT=0 keeps polling until the job reports completion.
# ---------------------------------------------------------------------------
VIDEO_POLL_INTERVAL = float(os.getenv("ADGEN_VIDEO_POLL_INTERVAL", "10"))
VIDEO_POLL_MAX_WAIT = float(os.getenv("ADGEN_VIDEO_POLL_MAX_WAIT", "1200"))
VIDEO_DOWNLOAD_TIMEOUT = float(os.getenv("ADGEN_VIDEO_DOWNLOAD_TIMEOUT", "300"))

# ---------------------------------------------------------------------------
# Form inputs
# ---------------------------------------------------------------------------
CHANNEL_OPTIONS = ["TikTok", "YouTube", "Instagram Feed", "Instagram Reels", "Billboard"]

# "PNG, JPG, GIF up to 10MB"
MAX_UPLOAD_BYTES = int(os.getenv("ADGEN_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
HOST = os.getenv("ADGEN_HOST", "0.0.0.0")
PORT = int(os.getenv("ADGEN_PORT", "8000"))

# Ensure output dirs exist
OUTPUT_DIR.mkdir(exist_ok=True)
VIDEO_DIR.mkdir(exist_ok=True)
UPLOAD_DIR.mkdir(exist_ok=True)
