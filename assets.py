# assets.py
"""
Logo loading for the invoice header.

Every failure here is soft: a logo that can't be fetched or decoded just
means the header renders without one.
"""
import base64
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

import httpx
from reportlab.lib.utils import ImageReader

from config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddableImage:
    data: bytes
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    def reader(self) -> ImageReader:
        return ImageReader(io.BytesIO(self.data))


class HttpFetcher:
    """
    fetch(url) -> bytes | None.
    http(s) URLs go through httpx; anything else is read from STATIC_DIR.
    """

    def __init__(self, timeout: float | None = None, static_dir: str | None = None, transport=None):
        self.timeout = Config.LOGO_FETCH_TIMEOUT if timeout is None else timeout
        self.static_dir = Path(static_dir or Config.STATIC_DIR)
        self._transport = transport

    async def fetch(self, url: str) -> bytes | None:
        if url.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport, follow_redirects=True) as client:
                response = await client.get(url)
            if not response.is_success:
                logger.warning("Logo fetch failed: %s -> HTTP %s", url, response.status_code)
                return None
            return response.content

        path = self.static_dir / url.lstrip("/")
        if not path.is_file():
            logger.warning("Logo file not found: %s", path)
            return None
        return path.read_bytes()


class ReportlabImageProbe:
    """probe(data) -> (width, height) in pixels, via reportlab's ImageReader."""

    def probe(self, data: bytes) -> tuple[int, int]:
        iw, ih = ImageReader(io.BytesIO(data)).getSize()
        return int(iw), int(ih)


def _guess_mime(url: str) -> str:
    mime, _ = mimetypes.guess_type(url)
    return mime if mime and mime.startswith("image/") else "image/png"


async def load_logo(url: str | None, fetcher) -> EmbeddableImage | None:
    if not url:
        return None
    try:
        data = await fetcher.fetch(url)
    except Exception as e:
        logger.warning("Logo fetch failed: %s (%s)", url, e)
        return None
    if not data:
        return None
    return EmbeddableImage(data=data, mime_type=_guess_mime(url))


def compute_aspect_ratio(image: EmbeddableImage | None, probe=None) -> float | None:
    if image is None:
        return None
    probe = probe or ReportlabImageProbe()
    try:
        w, h = probe.probe(image.data)
    except Exception as e:
        logger.warning("Could not decode logo image: %s", e)
        return None
    if not w or not h or w <= 0 or h <= 0:
        return None
    return float(w) / float(h)


def logo_size(aspect_ratio: float | None, max_h: float, max_w: float) -> tuple[float, float]:
    """Height-first scaling, clamped to max_w; square footprint without a ratio."""
    if not aspect_ratio:
        return max_h, max_h
    w = max_h * aspect_ratio
    h = max_h
    if w > max_w:
        w = max_w
        h = max_w / aspect_ratio
    return w, h
