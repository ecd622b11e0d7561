"""Viewer configuration models."""
from dataclasses import dataclass, field
from typing import List, Optional

from .tier import Tier
from .viewer import SpreadMode

@dataclass(frozen=True)
class Background:
    """Parsed background spec: solid color, two-color gradient, or image."""
    kind: str  # "solid", "gradient" or "image"
    colors: List[str] = field(default_factory=list)
    gradient: Optional[str] = None  # "linear" or "radial"
    image_url: Optional[str] = None
    
    def css(self) -> str:
        """CSS `background` value for this spec."""
        if self.kind == "gradient":
            if self.gradient == "radial":
                return f"radial-gradient(circle, {self.colors[0]}, {self.colors[1]})"
            return f"linear-gradient(135deg, {self.colors[0]}, {self.colors[1]})"
        if self.kind == "image":
            return f'url("{self.image_url}") center / cover no-repeat'
        return self.colors[0]

@dataclass(frozen=True)
class ViewerOptions:
    """Normalized configuration surface of the viewer."""
    source: Optional[str]
    background: Background
    spread: Optional[SpreadMode]  # None means decide from layout
    quality: Tier
    watermark: Optional[str] = None
