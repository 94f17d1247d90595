"""FastAPI Echo API for exercising reqwire end to end.

Tests drive it through ``fastapi.testclient.TestClient``, which is a
synchronous ``httpx.Client`` and can be handed to ``with_client``.
"""

import base64
from typing import Any

from fastapi import FastAPI, File, Form, Header, Request, Response, UploadFile
from fastapi.responses import PlainTextResponse

app = FastAPI(
    title="reqwire Echo API",
    description="Echo endpoints for request builder tests",
    version="1.0.0",
)


# =============================================================================
# Echo Endpoints
# =============================================================================


@app.post("/echo")
@app.put("/echo")
@app.patch("/echo")
async def echo_json(request: Request) -> Response:
    """Return the request body unchanged with the same content type."""
    body = await request.body()
    return Response(
        content=body,
        media_type=request.headers.get("content-type", "application/octet-stream"),
    )


@app.get("/inspect")
@app.delete("/inspect")
async def inspect(request: Request) -> dict[str, Any]:
    """Describe the request: method, query and headers."""
    return {
        "method": request.method,
        "query": dict(request.query_params),
        "headers": {k.lower(): v for k, v in request.headers.items()},
    }


@app.post("/form")
async def echo_form(request: Request) -> dict[str, Any]:
    """Return urlencoded form fields."""
    form = await request.form()
    return {"content_type": request.headers.get("content-type"), "fields": dict(form)}


@app.post("/upload")
async def upload(
    document: UploadFile = File(...),
    note: str = Form(""),
) -> dict[str, Any]:
    """Return the uploaded file name, its content and an extra field."""
    content = await document.read()
    return {
        "filename": document.filename,
        "content": content.decode("utf-8"),
        "note": note,
    }


@app.get("/auth")
async def auth(authorization: str | None = Header(None)) -> dict[str, Any]:
    """Decode a basic auth header."""
    if not authorization or not authorization.startswith("Basic "):
        return {"user": None, "password": None}
    user, _, password = base64.b64decode(authorization[len("Basic "):]).decode().partition(":")
    return {"user": user, "password": password}


# =============================================================================
# Status Endpoints
# =============================================================================


@app.get("/no-content")
async def no_content() -> Response:
    return Response(status_code=204)


@app.get("/missing")
async def missing() -> PlainTextResponse:
    return PlainTextResponse("not found", status_code=404)


@app.get("/object")
async def json_object() -> dict[str, Any]:
    return {"a": 1}


@app.get("/not-json")
async def not_json() -> PlainTextResponse:
    return PlainTextResponse("plain text, not json")
