"""
Unit tests for CompressionMiddleware and encoding negotiation.
"""

import asyncio
import gzip
import zlib
from pathlib import Path

import pytest

from staticserver.handlers import StaticFileHandler
from staticserver.http import HTTPResponse, HTTPStatus
from staticserver.middleware import CompressionMiddleware, choose_encoding

from conftest import CSS_CONTENT, make_request, read_body


@pytest.fixture
def handler(site: Path) -> StaticFileHandler:
    return StaticFileHandler(site)


def compress(handler: StaticFileHandler, path: str, **headers):
    async def run():
        middleware = CompressionMiddleware()
        response = await middleware(make_request(path, headers=headers), handler.handle)
        return response, await read_body(response)

    return asyncio.run(run())


class TestChooseEncoding:
    """Accept-Encoding → coding."""

    @pytest.mark.parametrize("header, expected", [
        ("gzip", "gzip"),
        ("gzip, deflate, br", "gzip"),
        ("deflate, gzip", "gzip"),
        ("deflate", "deflate"),
        ("br, deflate", "deflate"),
        ("GZIP", "gzip"),
        ("br", None),
        ("identity", None),
        ("", None),
        ("x-gzipped", None),
    ])
    def test_negotiation(self, header, expected):
        assert choose_encoding(header) == expected


class TestCompressionMiddleware:

    def test_gzip_css(self, handler: StaticFileHandler):
        response, body = compress(handler, "/style.css", **{"Accept-Encoding": "gzip, deflate"})

        assert response.headers["Content-Encoding"] == "gzip"
        assert "Content-Length" not in response.headers
        assert response.headers["Vary"] == "Accept-Encoding"
        assert gzip.decompress(body) == CSS_CONTENT

    def test_deflate_css(self, handler: StaticFileHandler):
        response, body = compress(handler, "/style.css", **{"Accept-Encoding": "deflate"})

        assert response.headers["Content-Encoding"] == "deflate"
        assert zlib.decompress(body) == CSS_CONTENT

    def test_html_index(self, handler: StaticFileHandler):
        response, _ = compress(handler, "/", **{"Accept-Encoding": "gzip"})
        assert response.headers["Content-Encoding"] == "gzip"

    def test_no_accept_encoding(self, handler: StaticFileHandler):
        response, body = compress(handler, "/style.css")

        assert "Content-Encoding" not in response.headers
        assert response.headers["Content-Length"] == str(len(CSS_CONTENT))
        assert body == CSS_CONTENT

    def test_unsupported_coding_only(self, handler: StaticFileHandler):
        response, body = compress(handler, "/style.css", **{"Accept-Encoding": "br"})

        assert "Content-Encoding" not in response.headers
        assert body == CSS_CONTENT

    def test_images_are_not_compressed(self, handler: StaticFileHandler):
        response, _ = compress(handler, "/logo.png", **{"Accept-Encoding": "gzip"})

        assert "Content-Encoding" not in response.headers
        assert response.headers["Content-Length"] == "72"

    @pytest.mark.parametrize("name", ["data.json", "module.mjs"])
    def test_js_family_extensions_are_compressed(self, handler: StaticFileHandler, site: Path, name: str):
        payload = b'{"items": [1, 2, 3]}\n' * 50
        (site / name).write_bytes(payload)

        response, body = compress(handler, f"/{name}", **{"Accept-Encoding": "gzip"})

        assert response.headers["Content-Encoding"] == "gzip"
        assert gzip.decompress(body) == payload

    def test_range_is_compressed_after_slicing(self, handler: StaticFileHandler):
        response, body = compress(
            handler, "/style.css", **{"Accept-Encoding": "gzip", "Range": "bytes=0-99"}
        )

        assert response.status == HTTPStatus.PARTIAL_CONTENT
        assert response.headers["Content-Range"] == f"bytes 0-99/{len(CSS_CONTENT)}"
        assert gzip.decompress(body) == CSS_CONTENT[:100]

    def test_inline_bodies_untouched(self, handler: StaticFileHandler):
        response, body = compress(handler, "/missing.css", **{"Accept-Encoding": "gzip"})

        assert response.status == HTTPStatus.NOT_FOUND
        assert "Content-Encoding" not in response.headers
        assert body == b"404 Not Found!"

    def test_already_encoded_response(self):
        async def next_handler(request):
            return HTTPResponse(
                headers={"Content-Encoding": "gzip"},
                stream=object(),
                compressible=True,
            )

        async def run():
            middleware = CompressionMiddleware()
            return await middleware(make_request("/x.css", headers={"Accept-Encoding": "gzip"}), next_handler)

        response = asyncio.run(run())
        assert response.headers == {"Content-Encoding": "gzip"}

    def test_existing_vary_is_extended(self):
        async def next_handler(request):
            response = HTTPResponse(headers={"Vary": "Origin"}, compressible=True)
            response.stream = _Empty()
            return response

        async def run():
            middleware = CompressionMiddleware()
            response = await middleware(make_request("/x.css", headers={"Accept-Encoding": "gzip"}), next_handler)
            await response.aclose()
            return response

        assert asyncio.run(run()).headers["Vary"] == "Origin, Accept-Encoding"


class _Empty:
    def __aiter__(self):
        return self

    async def __anext__(self):
        raise StopAsyncIteration

    async def aclose(self):
        pass
