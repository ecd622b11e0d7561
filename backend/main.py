"""Main entry point for the Flipbook renderer API."""
import logging
from typing import Optional
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL, PORT, RELAY_CACHE_CONTROL
from logger import setup_logging
from models.api import BackgroundInfo, HealthResponse, ViewerConfigResponse
from services.relay import InvalidRelayURL, RelayClient, RelayError, UpstreamError, content_disposition
from services.viewer_options import ViewerConfigParser

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Flipbook Renderer",
    description="Document relay and viewer configuration for the progressive flip-book viewer",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
relay_client: RelayClient = None
config_parser: ViewerConfigParser = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global relay_client, config_parser
    
    logger.info("Initializing Flipbook renderer services...")
    
    try:
        relay_client = RelayClient()
        logger.info("Initialized RelayClient")
        
        config_parser = ViewerConfigParser()
        logger.info("Initialized ViewerConfigParser")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Flipbook Renderer API"}


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Detailed health check."""
    return HealthResponse(
        status="healthy",
        service="flipbook-renderer",
        version="1.0.0"
    )


def _relay_error(status_code: int, message: str) -> PlainTextResponse:
    return PlainTextResponse(
        message,
        status_code=status_code,
        headers={"Access-Control-Allow-Origin": "*"}
    )


@app.get("/api/proxy")
async def proxy_endpoint(
    url: Optional[str] = None,
    dl: Optional[str] = None
) -> Response:
    """
    CORS-friendly document relay.
    
    Fetches `url` (http or https only) and relays its body and content type.
    With `dl` set, the response asks the browser to download the file.
    
    Returns:
        200 with the upstream body, 400 for a missing or invalid URL, the
        upstream status when upstream fails, 500 on any other fault
    """
    try:
        relayed = await relay_client.fetch(url)
        
        headers = {
            "Access-Control-Allow-Origin": "*",
            "Cache-Control": RELAY_CACHE_CONTROL,
        }
        if dl:
            headers["Content-Disposition"] = content_disposition(relayed.filename)
        
        return Response(
            content=relayed.content,
            status_code=200,
            media_type=relayed.content_type,
            headers=headers
        )
    except InvalidRelayURL as e:
        logger.info(f"Rejected relay request: {e}")
        return _relay_error(400, str(e))
    except UpstreamError as e:
        return _relay_error(e.status_code, str(e))
    except RelayError as e:
        logger.error(f"Relay failed for {url}: {e}")
        return _relay_error(500, "Proxy error")
    except Exception as e:
        logger.error(f"Unexpected relay error for {url}: {e}", exc_info=True)
        return _relay_error(500, "Proxy error")


@app.get("/api/viewer-config", response_model=ViewerConfigResponse)
async def viewer_config_endpoint(
    pdf: Optional[str] = None,
    bg: Optional[str] = None,
    mode: Optional[str] = None,
    quality: Optional[str] = None,
    wm: Optional[str] = None
) -> ViewerConfigResponse:
    """
    Normalize the viewer configuration surface.
    
    Args:
        pdf: Document URL (plain or already proxied)
        bg: Background spec
        mode: auto, single or double
        quality: auto, high or retina
        wm: Watermark text
        
    Returns:
        ViewerConfigResponse with defaults applied and document URLs resolved
    """
    try:
        options = config_parser.parse(source=pdf, background=bg, mode=mode, quality=quality, watermark=wm)
        
        document_url = download_url = open_url = None
        if options.source:
            document_url = config_parser.document_url(options.source)
            download_url = config_parser.download_url(options.source)
            open_url = config_parser.open_url(options.source)
        
        background = options.background
        return ViewerConfigResponse(
            source=options.source,
            document_url=document_url,
            download_url=download_url,
            open_url=open_url,
            background=BackgroundInfo(
                kind=background.kind,
                colors=list(background.colors),
                gradient=background.gradient,
                image_url=background.image_url,
                css=background.css()
            ),
            mode=options.spread.value if options.spread else "auto",
            quality=options.quality.label,
            watermark=options.watermark
        )
    except Exception as e:
        logger.error(f"Unexpected error building viewer config: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Flipbook Renderer API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
