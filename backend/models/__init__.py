"""Data models for the Flipbook renderer."""
from .tier import Tier
from .render import PageSize, RenderRequest, Bitmap, RenderFailure, PageCacheEntry, PageState
from .viewer import SpreadMode, Viewport, StageSize, Layout, ViewerState
from .options import Background, ViewerOptions
from .api import BackgroundInfo, ViewerConfigResponse, HealthResponse

__all__ = [
    "Tier",
    "PageSize",
    "RenderRequest",
    "Bitmap",
    "RenderFailure",
    "PageCacheEntry",
    "PageState",
    "SpreadMode",
    "Viewport",
    "StageSize",
    "Layout",
    "ViewerState",
    "Background",
    "ViewerOptions",
    "BackgroundInfo",
    "ViewerConfigResponse",
    "HealthResponse",
]
