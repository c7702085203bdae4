from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple
import asyncio
import base64
import binascii
import io
import uuid

import httpx
from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.errors import EncodingError, PreviewReleaseError
from app.utils.logging import get_logger

logger = get_logger("intake")

FALLBACK_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Preview:
    data: bytes
    media_type: str


class PreviewStore:
    """In-memory previews served to the page, one per loaded image."""

    def __init__(self) -> None:
        self._items: Dict[str, Preview] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, preview_id: object) -> bool:
        return preview_id in self._items

    def acquire(self, data: bytes, media_type: str) -> str:
        preview_id = uuid.uuid4().hex
        self._items[preview_id] = Preview(data=data, media_type=media_type)
        logger.info(f"Preview acquired id={preview_id} bytes={len(data)}")
        return preview_id

    def get(self, preview_id: str) -> Preview | None:
        return self._items.get(preview_id)

    def release(self, preview_id: str) -> None:
        if self._items.pop(preview_id, None) is None:
            raise PreviewReleaseError(f"Preview {preview_id} is not held")
        logger.info(f"Preview released id={preview_id}")


@dataclass(frozen=True)
class ImageHandle:
    filename: str
    media_type: str
    data: bytes
    preview_id: str

    @property
    def preview_url(self) -> str:
        return f"/v1/previews/{self.preview_id}"


def sniff_media_type(data: bytes) -> str:
    """Best-effort media type from the image header. Never rejects a file."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", FALLBACK_MEDIA_TYPE)
    except (UnidentifiedImageError, OSError, ValueError):
        return FALLBACK_MEDIA_TYPE


def select_image(store: PreviewStore, data: bytes, filename: str | None, content_type: str | None) -> ImageHandle:
    media_type = (content_type or "").strip().lower()
    if not media_type or media_type == FALLBACK_MEDIA_TYPE:
        media_type = sniff_media_type(data)
    preview_id = store.acquire(data, media_type)
    handle = ImageHandle(
        filename=filename or "upload",
        media_type=media_type,
        data=data,
        preview_id=preview_id,
    )
    logger.info(f"Image selected name={handle.filename} type={media_type}")
    return handle


async def fetch_image(url: str, max_bytes: int | None = None) -> Tuple[bytes, str | None]:
    """Download an image for the "by URL" intake path, refusing bodies over ``max_bytes``."""
    limit = max_bytes if max_bytes is not None else settings.image_fetch_max_bytes
    chunks: list[bytes] = []
    received = 0
    try:
        async with httpx.AsyncClient(timeout=settings.image_fetch_timeout, follow_redirects=True) as client:
            async with client.stream("GET", url) as resp:
                resp.raise_for_status()
                declared = resp.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > limit:
                    raise EncodingError(f"Obraz jest zbyt duży (limit {limit} B).")
                async for chunk in resp.aiter_bytes():
                    received += len(chunk)
                    if received > limit:
                        raise EncodingError(f"Obraz jest zbyt duży (limit {limit} B).")
                    chunks.append(chunk)
                content_type = resp.headers.get("content-type")
    except httpx.HTTPError as e:
        logger.warning(f"Image download failed url={url}: {e}")
        raise EncodingError(f"Nie udało się pobrać obrazu: {e}") from e
    if content_type:
        content_type = content_type.split(";", 1)[0]
    return b"".join(chunks), content_type


def _to_data_url(data: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


async def encode(handle: ImageHandle) -> Tuple[str, str]:
    """Base64 payload of the image (data URL with its prefix stripped) and its media type."""
    try:
        data_url = await asyncio.to_thread(_to_data_url, handle.data, handle.media_type)
    except (TypeError, ValueError, binascii.Error) as e:
        raise EncodingError() from e

    _, _, payload = data_url.partition(",")
    if not payload:
        raise EncodingError()
    return payload, handle.media_type
