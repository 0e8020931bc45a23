"""Best-effort bytes -> text for fetched comprovantes.

The result only feeds classification suggestions, so every failure is
absorbed: the worst case is the lowercased source URL, which still carries
whatever hints the file name has.
"""

import io
import logging
import zlib
from typing import Optional

import requests
from django.conf import settings
from pypdf import PdfReader

logger = logging.getLogger(__name__)

MIN_SURFACE_CHARS = 20
STREAM_TOKEN = b"stream"
ENDSTREAM_TOKEN = b"endstream"


class TextExtractionStrategy:
    name = "base"

    def extract(self, data: bytes, content_type: str) -> Optional[str]:
        raise NotImplementedError


class PlainTextStrategy(TextExtractionStrategy):
    name = "plain_text"

    def extract(self, data, content_type):
        if not (content_type or "").lower().startswith("text/"):
            return None
        return data.decode("utf-8", errors="replace")


class Latin1SurfaceStrategy(TextExtractionStrategy):
    name = "latin1"

    def extract(self, data, content_type):
        return data.decode("latin-1")


class PdfStreamScanStrategy(TextExtractionStrategy):
    """Inflate every ``stream ... endstream`` slice found in the raw bytes."""

    name = "pdf_stream_scan"

    def extract(self, data, content_type):
        fragments = []
        pos = 0
        while True:
            start = data.find(STREAM_TOKEN, pos)
            if start < 0:
                break
            end = data.find(ENDSTREAM_TOKEN, start + len(STREAM_TOKEN))
            if end < 0:
                break
            chunk = data[start + len(STREAM_TOKEN):end].lstrip(b"\r\n")
            text = _inflate(chunk)
            if text:
                fragments.append(text)
            pos = end + len(ENDSTREAM_TOKEN)
        if not fragments:
            return None
        return "\n" + "\n".join(fragments)


class PypdfStrategy(TextExtractionStrategy):
    name = "pypdf"

    def extract(self, data, content_type):
        reader = PdfReader(io.BytesIO(data))
        text_parts = []
        for page in reader.pages:
            text_parts.append(page.extract_text() or "")
        return "\n".join(text_parts).strip() or None


def _inflate(chunk: bytes) -> Optional[str]:
    try:
        raw = zlib.decompressobj().decompress(chunk)
    except zlib.error:
        return None
    if not raw:
        return None
    return raw.decode("utf-8", errors="replace")


class RawTextExtractor:
    """Plain text, then the Latin-1 surface, then the stream scan when the
    surface is too short to be useful."""

    def __init__(self):
        self.plain = PlainTextStrategy()
        self.surface = Latin1SurfaceStrategy()
        self.scan = PdfStreamScanStrategy()

    def extract(self, data: bytes, content_type: str) -> Optional[str]:
        text = self.plain.extract(data, content_type)
        if text is not None:
            return text
        surface = self.surface.extract(data, content_type)
        if len(surface) >= MIN_SURFACE_CHARS:
            return surface
        scanned = self.scan.extract(data, content_type)
        return scanned or surface or None


class PypdfTextExtractor:
    def __init__(self):
        self.plain = PlainTextStrategy()
        self.pdf = PypdfStrategy()
        self.fallback = RawTextExtractor()

    def extract(self, data: bytes, content_type: str) -> Optional[str]:
        text = self.plain.extract(data, content_type)
        if text is not None:
            return text
        try:
            text = self.pdf.extract(data, content_type)
        except Exception as exc:
            logger.info("pypdf_extract_failed error=%s fallback=raw", exc)
            text = None
        return text or self.fallback.extract(data, content_type)


EXTRACTORS = {
    "raw": RawTextExtractor,
    "pypdf": PypdfTextExtractor,
}


def get_extractor(name: Optional[str] = None):
    key = (name or getattr(settings, "COMPROVANTE_TEXT_EXTRACTOR", "raw") or "raw").lower()
    return EXTRACTORS.get(key, RawTextExtractor)()


def extract_text(data: Optional[bytes], content_type: str, source_url: str, *, extractor=None) -> str:
    fallback = (source_url or "").lower()
    if not data:
        return fallback
    extractor = extractor or get_extractor()
    try:
        text = extractor.extract(data, content_type or "")
    except Exception as exc:
        logger.warning("text_extract_failed url=%s error=%s", source_url, exc)
        return fallback
    return text or fallback


def fetch_document(url: str, *, timeout: Optional[float] = None) -> tuple[bytes, str]:
    timeout = timeout if timeout is not None else settings.COMPROVANTE_FETCH_TIMEOUT
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content, response.headers.get("content-type", "")


def fetch_and_extract(url: str, *, fetcher=None, extractor=None) -> str:
    fetcher = fetcher or fetch_document
    try:
        data, content_type = fetcher(url)
    except Exception as exc:
        logger.warning("comprovante_fetch_failed url=%s error=%s", url, exc)
        return (url or "").lower()
    return extract_text(data, content_type, url, extractor=extractor)
