"""Tests for the best-effort comprovante text extraction."""

import zlib

import pytest

from financeiro.text_extraction import (
    PypdfTextExtractor,
    RawTextExtractor,
    extract_text,
    fetch_and_extract,
    get_extractor,
)

URL = "https://files.example.com/Comprovantes/PIX-Energia.pdf"


def fake_pdf(*payloads: bytes) -> bytes:
    parts = [b"%PDF-1.4\n"]
    for payload in payloads:
        parts.append(b"<< /Filter /FlateDecode >>\nstream\r\n")
        parts.append(zlib.compress(payload))
        parts.append(b"\nendstream\n")
    return b"".join(parts)


def test_text_content_is_decoded_as_utf8():
    data = "Pagamento de água".encode("utf-8")
    assert extract_text(data, "text/plain; charset=utf-8", URL) == "Pagamento de água"


def test_long_surface_is_returned_as_latin1():
    data = "Transferência PIX para Fulano de Tal".encode("latin-1")
    assert extract_text(data, "application/octet-stream", URL) == "Transferência PIX para Fulano de Tal"


def test_short_surface_without_streams_is_kept():
    assert extract_text(b"PIX 10,00", "application/pdf", URL) == "PIX 10,00"


def test_stream_scan_inflates_deflate_streams():
    data = fake_pdf(b"BT (energia) Tj ET")
    assert "energia" in RawTextExtractor().scan.extract(data, "application/pdf")


def test_stream_scan_collects_every_stream():
    data = fake_pdf(b"primeiro", b"segundo")
    scanned = RawTextExtractor().scan.extract(data, "application/pdf")
    assert scanned == "\nprimeiro\nsegundo"


def test_stream_scan_skips_undecodable_chunks():
    data = b"stream\nnot-zlib\nendstream"
    assert RawTextExtractor().scan.extract(data, "application/pdf") is None


def test_empty_payload_returns_lowercased_url():
    assert extract_text(b"", "application/pdf", URL) == URL.lower()


def test_extractor_failure_returns_lowercased_url():
    class Broken:
        def extract(self, data, content_type):
            raise RuntimeError("boom")

    assert extract_text(b"abc", "application/pdf", URL, extractor=Broken()) == URL.lower()


def test_fetch_failure_returns_lowercased_url():
    def failing_fetcher(url):
        raise OSError("offline")

    assert fetch_and_extract(URL, fetcher=failing_fetcher) == URL.lower()


def test_fetch_and_extract_uses_fetched_bytes():
    def fetcher(url):
        return b"pagamento energia eletrica", "text/plain"

    assert fetch_and_extract(URL, fetcher=fetcher) == "pagamento energia eletrica"


@pytest.mark.parametrize(
    "name, expected",
    [("raw", RawTextExtractor), ("pypdf", PypdfTextExtractor), ("desconhecido", RawTextExtractor)],
)
def test_get_extractor(name, expected):
    assert isinstance(get_extractor(name), expected)


def test_pypdf_extractor_falls_back_on_invalid_pdf():
    data = "Transferência PIX para Fulano de Tal".encode("latin-1")
    text = PypdfTextExtractor().extract(data, "application/pdf")
    assert text == "Transferência PIX para Fulano de Tal"
