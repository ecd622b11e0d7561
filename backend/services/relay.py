"""Relay client for fetching remote documents on behalf of the viewer."""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, unquote, urlsplit
import httpx

from config import RELAY_TIMEOUT, RELAY_DEFAULT_FILENAME

logger = logging.getLogger(__name__)


@dataclass
class RelayedDocument:
    """A document fetched from upstream."""
    content: bytes
    content_type: str
    filename: str


class RelayError(Exception):
    """Raised when a document cannot be relayed."""


class InvalidRelayURL(RelayError):
    """Raised for missing, malformed, or non-http(s) URLs."""


class UpstreamError(RelayError):
    """Raised when the upstream server answers with a non-success status."""
    
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Upstream {status_code}")


class RelayClient:
    """Fetches remote documents over http(s) with redirects followed."""
    
    ALLOWED_SCHEMES = {"http", "https"}
    
    def __init__(self, timeout: float = RELAY_TIMEOUT):
        """
        Initialize RelayClient.
        
        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
    
    @classmethod
    def validate_url(cls, url: Optional[str]) -> str:
        """
        Check that a URL is present and uses http or https.
        
        Returns:
            The URL unchanged
            
        Raises:
            InvalidRelayURL: If the URL is missing, malformed, or uses another scheme
        """
        if not url:
            raise InvalidRelayURL("Missing ?url=")
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise InvalidRelayURL("Invalid URL") from e
        if not parts.scheme:
            raise InvalidRelayURL("Invalid URL")
        if parts.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise InvalidRelayURL("Invalid protocol")
        if not parts.netloc:
            raise InvalidRelayURL("Invalid URL")
        return url
    
    @staticmethod
    def filename_for(url: str) -> str:
        """Last path segment of the URL, or the default document name."""
        name = urlsplit(url).path.rstrip("/").split("/")[-1]
        return unquote(name) or RELAY_DEFAULT_FILENAME
    
    async def fetch(self, url: str) -> RelayedDocument:
        """
        Fetch a document from upstream.
        
        Args:
            url: Absolute http(s) URL of the document
            
        Returns:
            RelayedDocument with body, content type and filename
            
        Raises:
            InvalidRelayURL: If the URL is not acceptable
            UpstreamError: If upstream responds with a non-2xx status
            RelayError: On network failures
        """
        url = self.validate_url(url)
        
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.error(f"Relay timeout after {self.timeout}s for {url}")
            raise RelayError(f"Request timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error(f"Relay network error for {url}: {e}")
            raise RelayError(f"Network error: {str(e)}") from e
        
        if not response.is_success:
            logger.warning(f"Upstream returned {response.status_code} for {url}")
            raise UpstreamError(response.status_code)
        
        content_type = response.headers.get("content-type") or "application/pdf"
        logger.info(f"Relayed {len(response.content)} bytes from {url}")
        return RelayedDocument(
            content=response.content,
            content_type=content_type,
            filename=self.filename_for(url)
        )


def content_disposition(filename: str) -> str:
    """
    `attachment` header value for a download.
    
    The quoted `filename` keeps printable ASCII only, with quotes and
    backslashes replaced. Names that lose characters that way also get an
    RFC 5987 `filename*` parameter carrying the full UTF-8 name.
    """
    fallback = "".join(
        ch if " " <= ch <= "~" and ch not in '"\\' else "_"
        for ch in filename
    )
    header = f'attachment; filename="{fallback}"'
    if fallback != filename:
        header += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return header
