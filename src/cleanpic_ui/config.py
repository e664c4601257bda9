"""Environment-driven settings shared by the desktop client and the proxy."""

import os
from dotenv import load_dotenv

load_dotenv()

# Remote inpainting backend (Hugging Face Space running LaMa)
SPACE_ID = os.getenv("CLEANPIC_SPACE_ID", "efederici/lama-inpainting-demo")
SPACE_API_NAME = os.getenv("CLEANPIC_API_NAME", "/predict")
HF_TOKEN = os.getenv("HF_TOKEN") or None

# Ceiling for one remote round trip, in seconds
MAX_DURATION = float(os.getenv("CLEANPIC_MAX_DURATION", "60"))

# Proxy endpoint used by the desktop client
PROXY_URL = os.getenv("CLEANPIC_PROXY_URL", "http://127.0.0.1:8000/api/remove")

# "proxy" routes through the FastAPI server, "direct" talks to the Space
GATEWAY_MODE = os.getenv("CLEANPIC_GATEWAY", "proxy").lower()

# Proxy server bind address
HOST = os.getenv("CLEANPIC_HOST", "127.0.0.1")
PORT = int(os.getenv("CLEANPIC_PORT", "8000"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CLEANPIC_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Upload limit; any image/* type is accepted
MAX_UPLOAD_BYTES = int(float(os.getenv("CLEANPIC_MAX_UPLOAD_MB", "5")) * 1024 * 1024)

# Brush settings for the mask canvas
BRUSH_MIN = 5
BRUSH_MAX = 50
BRUSH_DEFAULT = 20

# "display" exports the mask at canvas size, "native" at the image's pixel size
MASK_RESOLUTION = os.getenv("CLEANPIC_MASK_RESOLUTION", "display").lower()

LOG_LEVEL = os.getenv("CLEANPIC_LOG_LEVEL", "INFO").upper()
