"""Provider and gateway HTTP clients against local aiohttp servers"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from studio_core.exceptions import GenerationTimeoutError, ProviderError, ProviderErrorKind
from studio_core.providers import AnthropicClient, ClipdropClient, ReplicateClient
from studio_core.services import run_with_deadline
from studio_core.workflow import GatewayClient, GatewayRequestError

from mock_providers import make_png_bytes

pytestmark = pytest.mark.integration


def base_url(server):
    return str(server.make_url("/")).rstrip("/")


class FakeReplicate:
    """Minimal predictions API: succeeds after ``polls`` status checks"""

    def __init__(self, polls=1, final=None, create_status=200):
        self.polls = polls
        self.final = final or {"status": "succeeded", "output": ["https://replicate.delivery/out.png"]}
        self.create_status = create_status
        self.created = []
        self.cancelled = []
        self.auth_headers = []
        self.checks = 0

    def app(self):
        app = web.Application()
        app.router.add_post("/models/{owner}/{name}/predictions", self.create)
        app.router.add_post("/predictions", self.create)
        app.router.add_get("/predictions/{id}", self.get)
        app.router.add_post("/predictions/{id}/cancel", self.cancel)
        return app

    async def create(self, request):
        self.auth_headers.append(request.headers.get("Authorization"))
        body = await request.json()
        self.created.append({"path": request.path, **body})
        if self.create_status >= 400:
            return web.Response(status=self.create_status, text="Payment Required")
        return web.json_response({"id": "p1", "status": "starting"})

    async def get(self, request):
        self.checks += 1
        if self.polls is not None and self.checks >= self.polls:
            return web.json_response({"id": "p1", **self.final})
        return web.json_response({"id": "p1", "status": "processing"})

    async def cancel(self, request):
        self.cancelled.append(request.match_info["id"])
        return web.json_response({"id": "p1", "status": "canceled"})


@pytest.mark.asyncio
async def test_replicate_run_polls_until_success():
    fake = FakeReplicate(polls=2)
    async with TestServer(fake.app()) as server:
        async with ReplicateClient("r8_key", base_url=base_url(server), poll_interval=0.01) as client:
            statuses = []
            output = await client.run("google/imagen-4-fast", {"prompt": "fox"}, callback=statuses.append)

    assert output == ["https://replicate.delivery/out.png"]
    assert fake.created[0]["path"] == "/models/google/imagen-4-fast/predictions"
    assert fake.created[0]["input"] == {"prompt": "fox"}
    assert fake.auth_headers == ["Bearer r8_key"]
    assert statuses == ["starting", "processing", "succeeded"]


@pytest.mark.asyncio
async def test_replicate_version_pinned_model():
    fake = FakeReplicate(polls=1)
    async with TestServer(fake.app()) as server:
        async with ReplicateClient("r8_key", base_url=base_url(server), poll_interval=0.01) as client:
            await client.run("stability-ai/sdxl:abc123", {"prompt": "fox"})

    assert fake.created[0]["path"] == "/predictions"
    assert fake.created[0]["version"] == "abc123"


@pytest.mark.asyncio
async def test_replicate_failed_prediction_is_classified():
    fake = FakeReplicate(polls=1, final={"status": "failed", "error": "402 Payment Required"})
    async with TestServer(fake.app()) as server:
        async with ReplicateClient("r8_key", base_url=base_url(server), poll_interval=0.01) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.run("google/imagen-4-fast", {"prompt": "fox"})

    assert exc_info.value.kind is ProviderErrorKind.PAYMENT_REQUIRED


@pytest.mark.asyncio
async def test_replicate_http_status_is_classified():
    fake = FakeReplicate(create_status=402)
    async with TestServer(fake.app()) as server:
        async with ReplicateClient("r8_key", base_url=base_url(server)) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.run("google/imagen-4-fast", {"prompt": "fox"})

    assert exc_info.value.kind is ProviderErrorKind.PAYMENT_REQUIRED
    assert exc_info.value.provider_status == 402


@pytest.mark.asyncio
async def test_replicate_prediction_cancelled_on_deadline():
    fake = FakeReplicate(polls=None)
    async with TestServer(fake.app()) as server:
        async with ReplicateClient("r8_key", base_url=base_url(server), poll_interval=0.01) as client:
            with pytest.raises(GenerationTimeoutError):
                await run_with_deadline(client.run("google/imagen-4-fast", {"prompt": "fox"}), 0.2, "image")

    assert fake.cancelled == ["p1"]


@pytest.mark.asyncio
async def test_clipdrop_remove_background():
    received = {}

    async def remove_background(request):
        received["api_key"] = request.headers.get("x-api-key")
        form = await request.post()
        received["filename"] = form["image_file"].filename
        received["transparency"] = form.get("transparency_handling")
        return web.Response(
            body=b"cutout",
            content_type="image/png",
            headers={"x-remaining-credits": "99", "x-credits-consumed": "1"},
        )

    app = web.Application()
    app.router.add_post("/remove-background/v1", remove_background)
    async with TestServer(app) as server:
        async with ClipdropClient("clip-key", base_url=base_url(server)) as client:
            result = await client.remove_background(
                make_png_bytes(), filename="fox.png", transparency_handling="discard_alpha"
            )

    assert result.content == b"cutout"
    assert result.content_type == "image/png"
    assert result.remaining_credits == 99
    assert result.credits_consumed == 1
    assert received == {"api_key": "clip-key", "filename": "fox.png", "transparency": "discard_alpha"}


@pytest.mark.asyncio
async def test_clipdrop_no_credits():
    async def remove_background(request):
        await request.read()
        return web.json_response({"error": "No remaining credits"}, status=402)

    app = web.Application()
    app.router.add_post("/remove-background/v1", remove_background)
    async with TestServer(app) as server:
        async with ClipdropClient("clip-key", base_url=base_url(server)) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.remove_background(make_png_bytes())

    assert exc_info.value.status_code == 402


@pytest.mark.asyncio
async def test_anthropic_complete():
    received = {}

    async def messages(request):
        received["api_key"] = request.headers.get("x-api-key")
        received["body"] = await request.json()
        return web.json_response({
            "content": [{"type": "text", "text": "A red "}, {"type": "text", "text": "fox"}],
            "stop_reason": "end_turn",
        })

    app = web.Application()
    app.router.add_post("/messages", messages)
    async with TestServer(app) as server:
        async with AnthropicClient("sk-ant", base_url=base_url(server)) as client:
            text = await client.complete("fox prompt", model="claude-test", system="be brief", max_tokens=100)

    assert text == "A red fox"
    assert received["api_key"] == "sk-ant"
    assert received["body"]["messages"] == [{"role": "user", "content": "fox prompt"}]
    assert received["body"]["system"] == "be brief"
    assert received["body"]["max_tokens"] == 100


class TestGatewayClient:
    @staticmethod
    def gateway_app():
        async def generate_image(request):
            body = await request.json()
            if body["prompt"] == "slow":
                await asyncio.sleep(0.5)
            if body["prompt"] == "expire":
                return web.json_response({"error": "Image generation is taking too long.", "isTimeout": True}, status=504)
            return web.json_response({"imageUrl": "https://replicate.delivery/out.png", "prompt": body["prompt"]})

        async def creations(request):
            return web.json_response({"items": [{"id": "c1", "userId": request.query["userId"]}]})

        async def image_to_image(request):
            body = await request.json()
            return web.json_response({"imageUrl": "https://replicate.delivery/i2i.png", "strength": body["strength"]})

        async def coloring_book(request):
            body = await request.json()
            return web.json_response({"imageUrl": "https://replicate.delivery/lines.png", "sourceImageUrl": body["imageUrl"]})

        app = web.Application()
        app.router.add_post("/api/generate-image", generate_image)
        app.router.add_get("/api/creations", creations)
        app.router.add_post("/api/image-to-image", image_to_image)
        app.router.add_post("/api/coloring-book", coloring_book)
        return app

    @pytest.mark.asyncio
    async def test_success(self):
        async with TestServer(self.gateway_app()) as server:
            async with GatewayClient(base_url(server)) as client:
                data = await client.generate_image("a red fox")
                listed = await client.list_creations("user-1")

        assert data["imageUrl"] == "https://replicate.delivery/out.png"
        assert listed["items"][0]["userId"] == "user-1"

    @pytest.mark.asyncio
    async def test_image_to_image_and_coloring_book(self):
        async with TestServer(self.gateway_app()) as server:
            async with GatewayClient(base_url(server)) as client:
                transformed = await client.image_to_image("watercolor", "https://cdn.example.com/fox.png", strength=0.5)
                lines = await client.coloring_book("https://cdn.example.com/fox.png")

        assert transformed == {"imageUrl": "https://replicate.delivery/i2i.png", "strength": 0.5}
        assert lines["sourceImageUrl"] == "https://cdn.example.com/fox.png"

    @pytest.mark.asyncio
    async def test_token_sent_to_gateway_only(self):
        seen = {}

        async def generate_image(request):
            seen["gateway"] = request.headers.get("Authorization")
            return web.json_response({"imageUrl": "https://replicate.delivery/out.png"})

        async def image(request):
            seen["image_host"] = request.headers.get("Authorization")
            return web.Response(body=b"png", content_type="image/png")

        gateway = web.Application()
        gateway.router.add_post("/api/generate-image", generate_image)
        image_host = web.Application()
        image_host.router.add_get("/fox.png", image)

        async with TestServer(gateway) as gateway_server, TestServer(image_host) as image_server:
            async with GatewayClient(base_url(gateway_server), auth_token="user-token") as client:
                await client.generate_image("a red fox")
                content, _ = await client.fetch_image(f"{base_url(image_server)}/fox.png")

        assert content == b"png"
        assert seen == {"gateway": "Bearer user-token", "image_host": None}

    @pytest.mark.asyncio
    async def test_client_side_deadline(self):
        async with TestServer(self.gateway_app()) as server:
            async with GatewayClient(base_url(server), timeouts={"image": 0.05}) as client:
                with pytest.raises(GatewayRequestError) as exc_info:
                    await client.generate_image("slow")

        assert exc_info.value.status == 408
        assert exc_info.value.is_timeout

    @pytest.mark.asyncio
    async def test_gateway_timeout_envelope(self):
        async with TestServer(self.gateway_app()) as server:
            async with GatewayClient(base_url(server)) as client:
                with pytest.raises(GatewayRequestError) as exc_info:
                    await client.generate_image("expire")

        assert exc_info.value.status == 504
        assert exc_info.value.is_timeout
        assert exc_info.value.message == "Image generation is taking too long."

    @pytest.mark.asyncio
    async def test_data_url_fetch_needs_no_session(self):
        client = GatewayClient("http://localhost:1")
        content, content_type = await client.fetch_image("data:image/png;base64,aGVsbG8=")
        assert content == b"hello"
        assert content_type == "image/png"
