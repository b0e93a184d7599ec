# server.py
import logging
from typing import Mapping, Optional

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from settings import Settings

logger = logging.getLogger(__name__)

# connection-scoped headers, plus the body framing httpx has already undone
HOP_BY_HOP = frozenset({"host","connection","keep-alive","proxy-authenticate","proxy-authorization","te",
                        "trailers","transfer-encoding","upgrade","content-length","content-encoding"})


def _filter_headers(headers: Mapping[str, str]) -> dict:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP}


def create_server(upstream: Optional[str] = None,
                  transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Health check plus a pass-through to the Dash process."""
    base_url = (upstream or Settings.from_env().dash_url).rstrip("/")
    app = FastAPI(title="Attrition Dashboard")

    @app.get("/healthz")
    async def healthz():
        return PlainTextResponse("ok")

    @app.api_route("/{path:path}", methods=["GET","POST","PUT","PATCH","DELETE","HEAD","OPTIONS"])
    async def forward(request: Request, path: str):
        async with httpx.AsyncClient(base_url=base_url, timeout=None, transport=transport) as client:
            outgoing = client.build_request(
                request.method, "/" + path,
                params=request.query_params.multi_items(),
                headers=_filter_headers(request.headers),
                content=await request.body(),
            )
            try:
                answer = await client.send(outgoing, follow_redirects=True)
            except httpx.TransportError as exc:
                logger.warning("dashboard at %s unreachable: %s", base_url, exc)
                return PlainTextResponse(f"dashboard unavailable: {exc}", status_code=502)
        return Response(answer.content, status_code=answer.status_code, headers=_filter_headers(answer.headers))

    return app


app = create_server()
