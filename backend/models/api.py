"""API request/response models."""
from typing import List, Optional
from pydantic import BaseModel

class BackgroundInfo(BaseModel):
    """Normalized background spec."""
    kind: str
    colors: List[str] = []
    gradient: Optional[str] = None
    image_url: Optional[str] = None
    css: str

class ViewerConfigResponse(BaseModel):
    """Normalized viewer configuration."""
    source: Optional[str] = None
    document_url: Optional[str] = None
    download_url: Optional[str] = None
    open_url: Optional[str] = None
    background: BackgroundInfo
    mode: str
    quality: str
    watermark: Optional[str] = None

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
