"""Viewer and layout data models."""
from dataclasses import dataclass
from enum import Enum

from config import WIDE_VIEWPORT_MIN

class SpreadMode(Enum):
    """Whether the book shows one page or a two-page spread."""
    SINGLE = "single"
    DOUBLE = "double"

@dataclass(frozen=True)
class Viewport:
    """Host viewport in css pixels."""
    width: float
    height: float
    device_pixel_ratio: float = 1.0
    
    @property
    def is_wide(self) -> bool:
        return self.width >= WIDE_VIEWPORT_MIN

@dataclass(frozen=True)
class StageSize:
    """Book container size in css pixels."""
    width: int
    height: int

@dataclass(frozen=True)
class Layout:
    """Stage size plus the spread mode decided for it."""
    stage: StageSize
    spread_mode: SpreadMode
    
    @property
    def page_width(self) -> float:
        """Css width of a single page inside the stage."""
        if self.spread_mode == SpreadMode.DOUBLE:
            return self.stage.width / 2
        return float(self.stage.width)

@dataclass
class ViewerState:
    """Navigation and zoom state of one viewing session."""
    current_page: int
    zoom_factor: float
    spread_mode: SpreadMode
