"""
Display adapters for the flip-book surface.

A display receives the ordered boot image list once, then point-in-time
page replacements, and reports page changes back to its listeners.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from config import THUMBNAIL_WIDTH
from models.render import Bitmap
from models.viewer import SpreadMode, StageSize

logger = logging.getLogger(__name__)

PageChangedCallback = Callable[[int], None]


class AdapterInitError(Exception):
    """Raised when the display cannot be constructed or initialized."""


@dataclass(frozen=True)
class Thumbnail:
    """Scaled-down representation of a page image."""
    page_index: int
    width: int
    height: int
    source: Bitmap


def make_thumbnail(page_index: int, bitmap: Bitmap, width: int = THUMBNAIL_WIDTH) -> Thumbnail:
    height = max(1, math.floor(bitmap.pixel_height * width / bitmap.pixel_width))
    return Thumbnail(page_index=page_index, width=width, height=height, source=bitmap)


class DisplayAdapter(ABC):
    """Contract between the render pipeline and a page-flip display."""
    
    def __init__(self):
        self._listeners: List[PageChangedCallback] = []
    
    def on_page_changed(self, callback: PageChangedCallback) -> None:
        self._listeners.append(callback)
    
    def _emit_page_changed(self, page: int) -> None:
        for callback in list(self._listeners):
            callback(page)
    
    @abstractmethod
    def init(self, stage: StageSize, spread_mode: SpreadMode, images: List[Bitmap]) -> None:
        """Initialize with one image per page, in page order."""
    
    @abstractmethod
    def replace_page(self, page_index: int, image: Bitmap) -> None:
        """Swap the image shown for a page, including its thumbnail."""
    
    @abstractmethod
    def navigate_to(self, page_index: int) -> None:
        """Jump to a page."""
    
    @abstractmethod
    def flip_next(self) -> None:
        """Advance one page or spread."""
    
    @abstractmethod
    def flip_prev(self) -> None:
        """Go back one page or spread."""
    
    def resize(self, stage: StageSize) -> None:
        """Apply a new stage size."""


class FlipbookDisplay(DisplayAdapter):
    """
    In-memory flip-book display.
    
    Each page slot holds its main image and thumbnail as one tuple, so a
    replacement swaps both at once. In double mode the cover is shown alone
    and later pages in (even, odd) spreads.
    """
    
    def __init__(self, watermark: Optional[str] = None):
        super().__init__()
        self.watermark = watermark
        self.stage: Optional[StageSize] = None
        self.spread_mode = SpreadMode.SINGLE
        self.current_page = 1
        self._slots: List[Tuple[Bitmap, Thumbnail]] = []
    
    @property
    def page_count(self) -> int:
        return len(self._slots)
    
    @property
    def overlay_text(self) -> Optional[str]:
        """Watermark drawn over the stage, if any."""
        return (self.watermark or "").strip() or None
    
    @property
    def initialized(self) -> bool:
        return self.stage is not None
    
    def init(self, stage: StageSize, spread_mode: SpreadMode, images: List[Bitmap]) -> None:
        if any(image is None for image in images):
            raise AdapterInitError("every page needs an initial image")
        self.stage = stage
        self.spread_mode = spread_mode
        self._slots = [(image, make_thumbnail(i, image)) for i, image in enumerate(images, start=1)]
        self.current_page = 1
        logger.info(f"Display initialized with {len(images)} pages ({spread_mode.value})")
    
    def replace_page(self, page_index: int, image: Bitmap) -> None:
        self._check_page(page_index)
        self._slots[page_index - 1] = (image, make_thumbnail(page_index, image))
    
    def page_image(self, page_index: int) -> Bitmap:
        self._check_page(page_index)
        return self._slots[page_index - 1][0]
    
    def thumbnail(self, page_index: int) -> Thumbnail:
        self._check_page(page_index)
        return self._slots[page_index - 1][1]
    
    def current_image(self) -> Bitmap:
        return self.page_image(self.current_page)
    
    def visible_pages(self) -> List[int]:
        """Pages shown at the current position."""
        if self.spread_mode == SpreadMode.SINGLE or self.current_page == 1:
            return [self.current_page]
        left = self._spread_left(self.current_page)
        return [p for p in (left, left + 1) if p <= self.page_count]
    
    def navigate_to(self, page_index: int) -> None:
        if not self._slots:
            return
        self._set_page(min(max(1, page_index), self.page_count))
    
    def flip_next(self) -> None:
        if self.spread_mode == SpreadMode.SINGLE:
            target = self.current_page + 1
        elif self.current_page == 1:
            target = 2
        else:
            target = self._spread_left(self.current_page) + 2
        if target <= self.page_count:
            self._set_page(target)
    
    def flip_prev(self) -> None:
        if self.spread_mode == SpreadMode.SINGLE:
            target = self.current_page - 1
        else:
            left = self._spread_left(self.current_page)
            target = 1 if left <= 2 else left - 2
        if target >= 1:
            self._set_page(target)
    
    def resize(self, stage: StageSize) -> None:
        self.stage = stage
    
    @staticmethod
    def _spread_left(page: int) -> int:
        return page if page % 2 == 0 else page - 1
    
    def _set_page(self, page: int) -> None:
        if page != self.current_page:
            self.current_page = page
            self._emit_page_changed(page)
    
    def _check_page(self, page_index: int) -> None:
        if not self._slots:
            raise RuntimeError("display is not initialized")
        if not 1 <= page_index <= self.page_count:
            raise ValueError(f"Page index {page_index} out of range 1..{self.page_count}")


class DirectoryDisplay(FlipbookDisplay):
    """Flip-book display that mirrors every page image to a directory."""
    
    def __init__(self, output_dir: Path, watermark: Optional[str] = None):
        super().__init__(watermark=watermark)
        self.output_dir = Path(output_dir)
    
    def init(self, stage: StageSize, spread_mode: SpreadMode, images: List[Bitmap]) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AdapterInitError(f"cannot create {self.output_dir}: {e}") from e
        super().init(stage, spread_mode, images)
        for page_index, image in enumerate(images, start=1):
            self._write(page_index, image)
    
    def replace_page(self, page_index: int, image: Bitmap) -> None:
        super().replace_page(page_index, image)
        self._write(page_index, image)
    
    def page_path(self, page_index: int) -> Path:
        return self.output_dir / f"page-{page_index:04d}.jpg"
    
    def _write(self, page_index: int, image: Bitmap) -> None:
        path = self.page_path(page_index)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(image.payload)
        tmp_path.replace(path)
