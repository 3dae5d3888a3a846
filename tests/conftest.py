import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


class StubTarget:
    """Local HTTP target that records every request it sees."""

    def __init__(self, server: TestServer, hits: list[dict]):
        self.server = server
        self.hits = hits

    def url(self, path: str = "/ok") -> str:
        return str(self.server.make_url(path))


@pytest.fixture
async def stub():
    hits: list[dict] = []

    async def handler(request: web.Request) -> web.Response:
        hits.append(
            {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "headers": dict(request.headers),
                "body": await request.text(),
            }
        )
        if request.path == "/slow":
            await asyncio.sleep(0.5)
            return web.Response(text="slow")
        if request.path == "/fail":
            return web.Response(status=500, text="boom")
        return web.Response(text="ok")

    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield StubTarget(server, hits)
    finally:
        await server.close()
