"""Shared fixtures for the Flipbook renderer tests."""
import sys
import threading
import time
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest

from models.render import PageSize
from services.display import FlipbookDisplay
from services.document_loader import DocumentHandle, Raster


class FakeDocument(DocumentHandle):
    """
    In-memory document handle recording every rasterization.
    
    Payloads encode the document tag, page and scale so tests can tell
    which document and request produced a bitmap.
    """
    
    def __init__(
        self,
        page_count,
        page_size=(600.0, 800.0),
        tag="doc",
        fail_pages=(),
        flaky_pages=(),
        delay=0.0,
        reentrant=False,
        gate=None,
        gated_pages=None
    ):
        self._page_count = page_count
        self.page_size = page_size
        self.tag = tag
        self.name = f"{tag}.pdf"
        self.fail_pages = set(fail_pages)
        self.flaky_pages = set(flaky_pages)
        self.delay = delay
        self.reentrant = reentrant
        self.gate = gate
        self.gated_pages = None if gated_pages is None else set(gated_pages)
        self.calls = []
        self.closed = threading.Event()
        self._lock = threading.Lock()
    
    @property
    def page_count(self):
        return self._page_count
    
    def native_size(self, page_index):
        return PageSize(*self.page_size)
    
    def rasterize(self, page_index, scale):
        with self._lock:
            self.calls.append((page_index, scale))
        if self.gate is not None and (self.gated_pages is None or page_index in self.gated_pages):
            self.gate.wait(timeout=5)
        if self.delay:
            time.sleep(self.delay)
        if page_index in self.fail_pages:
            raise RuntimeError(f"corrupt page {page_index}")
        if page_index in self.flaky_pages:
            self.flaky_pages.discard(page_index)
            raise MemoryError("out of memory")
        width = round(self.page_size[0] * scale)
        height = round(self.page_size[1] * scale)
        return Raster(width=width, height=height, payload=f"{self.tag}:{page_index}:{width}".encode())
    
    def close(self):
        self.closed.set()


@pytest.fixture
def make_document():
    """Factory for FakeDocument instances."""
    return FakeDocument


class RecordingDisplay(FlipbookDisplay):
    """FlipbookDisplay that keeps a log of init and replace calls."""
    
    def __init__(self, fail_init=False):
        super().__init__()
        self.fail_init = fail_init
        self.events = []
    
    def init(self, stage, spread_mode, images):
        if self.fail_init:
            raise ValueError("widget missing")
        super().init(stage, spread_mode, images)
        self.events.append(("init", list(images)))
    
    def replace_page(self, page_index, image):
        super().replace_page(page_index, image)
        self.events.append(("replace", page_index, image))
    
    @property
    def init_images(self):
        inits = [event for event in self.events if event[0] == "init"]
        return inits[-1][1] if inits else None
    
    def replacements(self, since_last_init=True):
        events = self.events
        if since_last_init:
            last_init = max(i for i, event in enumerate(events) if event[0] == "init")
            events = events[last_init + 1:]
        return [(event[1], event[2]) for event in events if event[0] == "replace"]


@pytest.fixture
def recording_display():
    return RecordingDisplay()


@pytest.fixture
def failing_display():
    """Display whose initialization always fails."""
    return RecordingDisplay(fail_init=True)
