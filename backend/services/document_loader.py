"""Document loading service for PDF rasterization."""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union
import fitz  # PyMuPDF

from config import JPEG_QUALITY
from models.render import PageSize
from services.relay import RelayClient, RelayError

logger = logging.getLogger(__name__)


@dataclass
class Raster:
    """Encoded raster produced by a document handle."""
    width: int
    height: int
    payload: bytes


class DocumentLoadError(Exception):
    """Raised when a document cannot be opened at all."""
    
    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Failed to load document {source}: {message}")


class DocumentHandle(ABC):
    """
    Opaque decoding capability for one opened document.
    
    Page indices are 1-indexed. Handles are not assumed to be safe for
    concurrent rasterization; a handle that is sets `reentrant = True`.
    """
    
    reentrant = False
    
    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""
    
    @abstractmethod
    def native_size(self, page_index: int) -> PageSize:
        """Native size of a page in document units."""
    
    @abstractmethod
    def rasterize(self, page_index: int, scale: float) -> Raster:
        """Rasterize a page at the given scale and encode it."""
    
    def close(self) -> None:
        """Release the underlying document."""


class PdfDocument(DocumentHandle):
    """PyMuPDF-backed document handle."""
    
    def __init__(self, pdf_document: fitz.Document, name: str = "document.pdf", jpeg_quality: int = JPEG_QUALITY):
        self._doc = pdf_document
        self.name = name
        self.jpeg_quality = jpeg_quality
    
    @property
    def page_count(self) -> int:
        return self._doc.page_count
    
    def native_size(self, page_index: int) -> PageSize:
        rect = self._doc[page_index - 1].rect
        return PageSize(width=rect.width, height=rect.height)
    
    def rasterize(self, page_index: int, scale: float) -> Raster:
        page = self._doc.load_page(page_index - 1)
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        try:
            width, height = pix.width, pix.height
            payload = pix.tobytes(output="jpeg", jpg_quality=self.jpeg_quality)
        finally:
            # Drop the pixel buffer before the next page is rendered
            pix = None
        return Raster(width=width, height=height, payload=payload)
    
    def close(self) -> None:
        if not self._doc.is_closed:
            self._doc.close()
            logger.debug(f"Closed document {self.name}")


DocumentSource = Union[DocumentHandle, bytes, str, os.PathLike]


class DocumentLoader:
    """Opens documents from bytes, filesystem paths, or http(s) URLs."""
    
    def __init__(self, relay_client: Optional[RelayClient] = None):
        """
        Initialize DocumentLoader.
        
        Args:
            relay_client: Client used to fetch remote documents
        """
        self.relay_client = relay_client or RelayClient()
    
    async def load(self, source: DocumentSource) -> DocumentHandle:
        """
        Open a document from any supported source.
        
        Args:
            source: An already-open handle, raw PDF bytes, a path, or a URL
            
        Returns:
            DocumentHandle ready for rasterization
            
        Raises:
            DocumentLoadError: If the document cannot be fetched or opened
        """
        if isinstance(source, DocumentHandle):
            return source
        
        loop = asyncio.get_running_loop()
        if isinstance(source, (bytes, bytearray)):
            return await loop.run_in_executor(None, self.open_bytes, bytes(source))
        
        source_str = os.fspath(source)
        if source_str.startswith(("http://", "https://")):
            try:
                relayed = await self.relay_client.fetch(source_str)
            except RelayError as e:
                raise DocumentLoadError(source_str, str(e)) from e
            return await loop.run_in_executor(None, self.open_bytes, relayed.content, relayed.filename)
        
        return await loop.run_in_executor(None, self.open_path, source_str)
    
    def open_bytes(self, data: bytes, name: str = "document.pdf") -> PdfDocument:
        """Open a PDF held in memory."""
        if not data:
            raise DocumentLoadError(name, "empty document")
        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {name}: {str(e)}")
            raise DocumentLoadError(name, str(e)) from e
        return self._checked(pdf_document, name)
    
    def open_path(self, filepath: str) -> PdfDocument:
        """Open a PDF file from disk."""
        filename = os.path.basename(filepath)
        if not os.path.exists(filepath):
            raise DocumentLoadError(filename, f"file not found: {filepath}")
        try:
            pdf_document = fitz.open(filepath)
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {str(e)}")
            raise DocumentLoadError(filename, str(e)) from e
        return self._checked(pdf_document, filename)
    
    def _checked(self, pdf_document: fitz.Document, name: str) -> PdfDocument:
        if pdf_document.page_count == 0:
            pdf_document.close()
            raise DocumentLoadError(name, "document has no pages")
        logger.info(f"Loaded {name}: {pdf_document.page_count} pages")
        return PdfDocument(pdf_document, name=name)
