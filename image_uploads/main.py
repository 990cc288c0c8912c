import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from image_uploads.data_uri import InvalidImageDataError, decode_image_data_uri
from image_uploads.db import init_db
from image_uploads.dependencies import get_image_repository
from image_uploads.repositories import ImageRepository
from image_uploads.schemas import (
    ErrorResponse,
    ImageDescriptor,
    ImageListResponse,
    ImageUploadRequest,
    ImageUploadResponse,
)
from config import get_settings

# Get settings and configure logging before anything else
settings = get_settings()
settings.configure_logging()

# Create logger for this module
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Storage type: {settings.storage_type}")
    logger.info(f"Blob store: {settings.store_name}")

    if settings.storage_type == "local":
        settings.storage_root.mkdir(parents=True, exist_ok=True)
    elif settings.storage_type == "database":
        init_db()

    yield

    # Shutdown
    logger.info("Shutting down application")


# Create FastAPI app with settings
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

router = APIRouter(prefix=settings.api_prefix, tags=["images"])


def allowed_methods(request: Request) -> str:
    """List the methods served at the request path, OPTIONS last."""
    methods: set[str] = set()
    for route in request.app.routes:
        if isinstance(route, APIRoute) and route.path == request.url.path:
            methods.update(route.methods)
    methods.discard("OPTIONS")
    return ", ".join(sorted(methods) + ["OPTIONS"])


def cors_headers(request: Request) -> dict[str, str]:
    """Permissive cross-origin headers for the endpoint being called."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": allowed_methods(request),
    }


def preflight(request: Request) -> Response:
    return Response(status_code=200, headers=cors_headers(request))


def build_image_url(request: Request, key: str) -> str:
    """Build the absolute fetch URL of a stored image.

    The origin is the configured public base URL, or the current request's.
    """
    base_url = settings.public_base_url or str(request.base_url)
    path = request.app.url_path_for("get_image")
    return f"{base_url.rstrip('/')}{path}?{urlencode({'filename': key})}"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as a JSON ``{"error": ...}`` body.

    Server errors use a generic ``error`` and put the failed operation in
    ``message``; the underlying cause is only ever logged.
    """
    if exc.status_code >= 500:
        content = ErrorResponse(error="Internal server error", message=exc.detail)
    elif exc.status_code == 405:
        content = ErrorResponse(error="Method not allowed")
    else:
        content = ErrorResponse(error=exc.detail)

    headers = dict(exc.headers or {})
    headers.update(cors_headers(request))
    return JSONResponse(
        content.model_dump(exclude_none=True),
        status_code=exc.status_code,
        headers=headers,
    )


@app.get("/health")
def health_check() -> dict[str, str]:
    """Simple health-check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": settings.app_version,
    }


@app.get("/config")
def get_config() -> dict[str, Any]:
    """Get current configuration (non-sensitive values only)."""
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "environment": settings.environment,
        "debug": settings.debug,
        "api_prefix": settings.api_prefix,
        "storage_type": settings.storage_type,
        "store_name": settings.store_name,
        "log_level": settings.log_level,
        "log_json": settings.log_json,
        "max_upload_size": settings.max_upload_size,
    }


_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    405: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/upload-image",
    response_model=ImageUploadResponse,
    name="upload_image",
    responses=_ERROR_RESPONSES,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": ImageUploadRequest.model_json_schema()}},
        }
    },
)
async def upload_image(
    request: Request,
    response: Response,
    image_repository: ImageRepository = Depends(get_image_repository),
) -> ImageUploadResponse:
    """Upload an image sent as a base64 data URI.

    The body is parsed by hand rather than through a Pydantic body model so
    that malformed JSON is reported as ``Invalid JSON data``. Every check
    runs before the single store write.

    Args:
        request: The incoming request; its body is ``{"image", "filename"?}``.
        response: Outgoing response, used to attach CORS headers.
        image_repository: Repository storing the image in the blob store.

    Returns:
        ImageUploadResponse: Identifiers, size, type and fetch URL of the image.

    Raises:
        HTTPException: 400 on invalid input, 500 if the store write fails.
    """
    raw_body = await request.body()
    if not raw_body.strip():
        raise HTTPException(status_code=400, detail="No file data received")

    try:
        body = json.loads(raw_body)
    except ValueError:
        logger.warning("Rejected upload: body is not valid JSON")
        raise HTTPException(status_code=400, detail="Invalid JSON data")

    if not isinstance(body, dict):
        body = {}

    filename = body.get("filename")
    if not filename or not isinstance(filename, str):
        filename = settings.default_filename

    try:
        decoded = decode_image_data_uri(body.get("image"), default_mime_type=settings.default_mime_type)
    except InvalidImageDataError as e:
        logger.warning(f"Rejected upload of {filename}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)

    if decoded.size > settings.max_upload_size:
        logger.warning(f"Rejected upload of {filename}: {decoded.size} bytes exceeds limit")
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {settings.max_upload_size_mb}MB",
        )

    try:
        stored = await run_in_threadpool(
            image_repository.add_image, decoded.content, filename, decoded.mime_type
        )
    except Exception as e:
        logger.error(f"Failed to upload image {filename}: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload image")

    response.headers.update(cors_headers(request))
    metadata = stored.metadata
    return ImageUploadResponse(
        file_id=metadata.file_id,
        filename=stored.key,
        original_name=metadata.original_name,
        size=metadata.size,
        mime_type=metadata.mime_type,
        url=build_image_url(request, stored.key),
        uploaded_at=metadata.uploaded_at,
    )


@router.options("/upload-image", include_in_schema=False)
async def upload_image_preflight(request: Request) -> Response:
    return preflight(request)


@router.get(
    "/get-image",
    name="get_image",
    response_class=Response,
    responses={
        200: {"content": {"image/*": {}}, "description": "The stored image bytes"},
        404: {"model": ErrorResponse},
        **_ERROR_RESPONSES,
    },
)
async def get_image(
    filename: Optional[str] = None,
    image_repository: ImageRepository = Depends(get_image_repository),
) -> Response:
    """Serve the bytes of a stored image.

    Stored images never change, so responses are cacheable for a long time.

    Args:
        filename: Storage key returned by the upload endpoint.
        image_repository: Repository reading from the blob store.

    Returns:
        Response: The raw image with its stored content type.

    Raises:
        HTTPException: 400 without a filename, 404 for an unknown key,
            500 if the store read fails.
    """
    if not filename:
        raise HTTPException(status_code=400, detail="Filename parameter is required")

    try:
        stored = await run_in_threadpool(image_repository.get_image, filename)
    except Exception as e:
        logger.error(f"Failed to retrieve image {filename}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve image")

    if stored is None:
        logger.warning(f"Image not found: {filename}")
        raise HTTPException(status_code=404, detail="File not found")

    return Response(
        content=stored.content,
        media_type=stored.metadata.mime_type or settings.default_mime_type,
        headers={
            "Cache-Control": f"public, max-age={settings.cache_max_age}",
            "Access-Control-Allow-Origin": "*",
        },
    )


@router.options("/get-image", include_in_schema=False)
async def get_image_preflight(request: Request) -> Response:
    return preflight(request)


@router.get(
    "/list-images",
    response_model=ImageListResponse,
    name="list_images",
    responses={405: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_images(
    request: Request,
    response: Response,
    image_repository: ImageRepository = Depends(get_image_repository),
) -> ImageListResponse:
    """List every stored image with its metadata and fetch URL.

    Metadata reads for all keys are issued concurrently; the result keeps
    the store's enumeration order.
    """
    try:
        keys = await run_in_threadpool(image_repository.list_keys)
        metadata_list = await asyncio.gather(
            *(run_in_threadpool(image_repository.get_metadata, key) for key in keys)
        )
    except Exception as e:
        logger.error(f"Failed to list images: {e}")
        raise HTTPException(status_code=500, detail="Failed to list images")

    images = [
        ImageDescriptor(
            filename=key,
            size=metadata.size,
            uploaded_at=metadata.uploaded_at,
            original_name=metadata.original_name,
            mime_type=metadata.mime_type,
            file_id=metadata.file_id,
            url=build_image_url(request, key),
        )
        for key, metadata in zip(keys, metadata_list)
    ]

    logger.info(f"Listing {len(images)} images.")

    response.headers.update(cors_headers(request))
    return ImageListResponse(images=images, count=len(images))


@router.options("/list-images", include_in_schema=False)
async def list_images_preflight(request: Request) -> Response:
    return preflight(request)


app.include_router(router)
