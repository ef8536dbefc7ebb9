"""Unit tests for the generation gateway helpers"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from studio_core.exceptions import InvalidInputError, PayloadTooLargeError
from studio_core.services import GenerationGateway, extract_model_url, validate_image_bytes
from studio_core.services import generation_service

from mock_providers import make_png_bytes


@pytest.mark.parametrize("output,expected", [
    ({"mesh": "https://x/mesh.glb", "glb": "https://x/other.glb"}, "https://x/mesh.glb"),
    ({"glb": "https://x/model.glb"}, "https://x/model.glb"),
    ({"output": "https://x/out.glb"}, "https://x/out.glb"),
    ("https://x/plain.glb", "https://x/plain.glb"),
    (["https://x/first.glb", "https://x/second.glb"], "https://x/first.glb"),
    ({"mesh": None, "status": "ok"}, None),
    ([], None),
    (None, None),
    (42, None),
])
def test_extract_model_url(output, expected):
    assert extract_model_url(output) == expected


def test_validate_image_bytes():
    assert validate_image_bytes(make_png_bytes()) == "png"


def test_validate_rejects_empty_and_garbage():
    with pytest.raises(InvalidInputError, match="No image file provided"):
        validate_image_bytes(b"")
    with pytest.raises(InvalidInputError, match="Invalid image file"):
        validate_image_bytes(b"definitely not an image")


def test_validate_rejects_oversized(monkeypatch):
    monkeypatch.setattr(generation_service, "MAX_UPLOAD_SIZE", 16)
    with pytest.raises(PayloadTooLargeError) as exc_info:
        validate_image_bytes(make_png_bytes())
    assert exc_info.value.status_code == 413


def test_request_ids_increase():
    gateway = GenerationGateway()
    first = gateway.next_request_id()
    assert gateway.next_request_id() == first + 1


def image_host():
    methods = []

    async def image(request):
        methods.append((request.method, request.path))
        if request.path.startswith("/storage/v1/object/") and request.method == "HEAD":
            return web.Response(status=400)
        return web.Response(body=b"png", content_type="image/png")

    async def page(request):
        methods.append((request.method, request.path))
        return web.Response(text="<html></html>", content_type="text/html")

    app = web.Application()
    app.router.add_route("*", "/img.png", image)
    app.router.add_route("*", "/storage/v1/object/public/creations/a.png", image)
    app.router.add_route("*", "/page", page)
    return app, methods


@pytest.mark.asyncio
async def test_validate_image_url():
    app, methods = image_host()
    gateway = GenerationGateway()
    async with TestServer(app) as server:
        base = str(server.make_url("/")).rstrip("/")
        assert await gateway.validate_image_url(f"{base}/img.png") is True
        assert await gateway.validate_image_url(f"{base}/page") is False
        assert await gateway.validate_image_url(f"{base}/storage/v1/object/public/creations/a.png") is True

    assert methods == [
        ("HEAD", "/img.png"),
        ("HEAD", "/page"),
        ("GET", "/storage/v1/object/public/creations/a.png"),
    ]


@pytest.mark.asyncio
async def test_validate_unreachable_url():
    gateway = GenerationGateway()
    assert await gateway.validate_image_url("http://127.0.0.1:1/img.png") is False
