"""Configuration management for the Flipbook renderer."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Relay Configuration
RELAY_TIMEOUT = float(os.getenv("RELAY_TIMEOUT", "30"))
RELAY_CACHE_CONTROL = "s-maxage=3600, stale-while-revalidate"
RELAY_DEFAULT_FILENAME = "document.pdf"

# Rasterization Configuration
MAX_SIDE = int(os.getenv("MAX_SIDE", "4000"))  # px, hard cap per raster side
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "92"))
RENDER_YIELD_SECONDS = float(os.getenv("RENDER_YIELD_SECONDS", "0.006"))
RENDER_WORKERS = int(os.getenv("RENDER_WORKERS", "3"))  # reentrant documents only

# Tier Policy
MAX_DEVICE_PIXEL_RATIO = 3.0
WIDE_VIEWPORT_MIN = 1024  # px
WIDE_FALLBACK_BASE = 1200  # css px
NARROW_FALLBACK_BASE = 800  # css px
LARGE_DOCUMENT_SHRINK = (  # (pages above, preview base factor), largest first
    (48, 0.75),
    (24, 0.85),
)

# Scheduler
BOOT_PAGES_WIDE = 4
BOOT_PAGES_NARROW = 2

# Layout
STAGE_WIDTH_FRACTION = 0.96
STAGE_MAX_WIDTH = 1400
STAGE_HEIGHT_FRACTION = 0.9
CHROME_HEIGHT = 64  # toolbar + margins
MIN_STAGE_WIDTH = 320
MIN_STAGE_HEIGHT = 240
NARROW_VIEWPORT_MAX = 768  # px, single page below this
THUMBNAIL_WIDTH = 160

# Viewer State
ZOOM_MIN = 1.0
ZOOM_MAX = 2.0
ZOOM_STEP = 0.15

# Viewer Defaults
DEFAULT_BACKGROUND = "solid:#0f0f13"
DEFAULT_SPREAD = "auto"
DEFAULT_QUALITY = "auto"

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
