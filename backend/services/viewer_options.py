"""Parsing of the viewer configuration surface."""
import logging
import re
from typing import Optional
from urllib.parse import quote, unquote

from config import DEFAULT_BACKGROUND, DEFAULT_QUALITY, DEFAULT_SPREAD
from models.options import Background, ViewerOptions
from models.tier import Tier
from models.viewer import SpreadMode

logger = logging.getLogger(__name__)


class ViewerConfigParser:
    """
    Normalizes viewer options; malformed values fall back to defaults.
    
    Background specs:
    - solid:<color>
    - gradient:<linear|radial>,<color1>,<color2>
    - image:<http(s) or root-relative url>
    """
    
    PROXY_PATH = "/api/proxy"
    GRADIENT_KINDS = {"linear", "radial"}
    SPREAD_VALUES = {"auto", "single", "double"}
    WATERMARK_MAX_LENGTH = 120
    
    COLOR_PATTERN = re.compile(
        r"^(#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})"
        r"|[a-zA-Z]{3,30}"
        r"|(?:rgb|rgba|hsl|hsla)\(\s*[\d.%\s,/]+\))$"
    )
    
    def parse(
        self,
        source: Optional[str] = None,
        background: Optional[str] = None,
        mode: Optional[str] = None,
        quality: Optional[str] = None,
        watermark: Optional[str] = None
    ) -> ViewerOptions:
        return ViewerOptions(
            source=(source or "").strip() or None,
            background=self.parse_background(background),
            spread=self.parse_spread(mode),
            quality=Tier.from_quality(quality or DEFAULT_QUALITY),
            watermark=self.parse_watermark(watermark)
        )
    
    def parse_background(self, spec: Optional[str]) -> Background:
        if spec:
            parsed = self._parse_background(spec.strip())
            if parsed is not None:
                return parsed
            logger.warning(f"Malformed background '{spec}', using {DEFAULT_BACKGROUND}")
        return self._parse_background(DEFAULT_BACKGROUND)
    
    def _parse_background(self, spec: str) -> Optional[Background]:
        kind, sep, value = spec.partition(":")
        kind = kind.strip().lower()
        value = value.strip()
        if not sep or not value:
            return None
        
        if kind == "solid":
            if self._is_color(value):
                return Background(kind="solid", colors=[value])
            return None
        
        if kind == "gradient":
            parts = [p.strip() for p in value.split(",")]
            if len(parts) != 3:
                return None
            gradient, color1, color2 = parts
            if gradient.lower() in self.GRADIENT_KINDS and self._is_color(color1) and self._is_color(color2):
                return Background(kind="gradient", colors=[color1, color2], gradient=gradient.lower())
            return None
        
        if kind == "image":
            if value.startswith(("http://", "https://", "/")) and '"' not in value:
                return Background(kind="image", image_url=value)
            return None
        
        return None
    
    def parse_spread(self, mode: Optional[str]) -> Optional[SpreadMode]:
        """`single`/`double` force a spread mode; `auto` (or anything else) means decide from layout."""
        normalized = (mode or DEFAULT_SPREAD).strip().lower()
        if normalized not in self.SPREAD_VALUES:
            logger.warning(f"Unrecognized mode '{mode}', using {DEFAULT_SPREAD}")
            return None
        if normalized == "auto":
            return None
        return SpreadMode(normalized)
    
    def parse_watermark(self, text: Optional[str]) -> Optional[str]:
        text = (text or "").strip()
        return text[:self.WATERMARK_MAX_LENGTH] or None
    
    def document_url(self, source: str) -> str:
        """Same-origin URL the viewer fetches the document from."""
        if source.startswith(self.PROXY_PATH):
            return source
        return f"{self.PROXY_PATH}?url={quote(source, safe='')}"
    
    def download_url(self, source: str) -> str:
        url = self.document_url(source)
        return f"{url}{'&' if '?' in url else '?'}dl=1"
    
    def open_url(self, source: str) -> str:
        """Original document URL, unwrapped from the proxy when possible."""
        raw = unquote(re.sub(r"^/api/proxy\?url=", "", source))
        return raw or self.document_url(source)
    
    def _is_color(self, value: str) -> bool:
        return bool(self.COLOR_PATTERN.match(value))
