"""Services for the Flipbook renderer."""
from .relay import RelayClient, RelayedDocument, RelayError, InvalidRelayURL, UpstreamError, content_disposition
from .document_loader import DocumentLoader, DocumentHandle, PdfDocument, Raster, DocumentLoadError
from .tier_policy import TierPolicy
from .render_runner import RenderTaskRunner
from .page_cache import PageBitmapCache
from .layout_engine import LayoutEngine
from .display import DisplayAdapter, FlipbookDisplay, DirectoryDisplay, AdapterInitError, Thumbnail
from .scheduler import RenderScheduler, SessionSuperseded
from .viewer_options import ViewerConfigParser
from .session import ViewerSession

__all__ = ['RelayClient', 'RelayedDocument', 'RelayError', 'InvalidRelayURL', 'UpstreamError', 'content_disposition', 'DocumentLoader', 'DocumentHandle', 'PdfDocument', 'Raster', 'DocumentLoadError', 'TierPolicy', 'RenderTaskRunner', 'PageBitmapCache', 'LayoutEngine', 'DisplayAdapter', 'FlipbookDisplay', 'DirectoryDisplay', 'AdapterInitError', 'Thumbnail', 'RenderScheduler', 'SessionSuperseded', 'ViewerConfigParser', 'ViewerSession']
