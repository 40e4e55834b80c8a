"""
HTTP surface: one endpoint, `?action=<name>`, answering with the
`{"success": ..., "data" | "error": ...}` envelope. Deployable as an ASGI
function (`server:app`) or through `main.py --serve`.
"""

import json
import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from actions.context import Clients, build_clients
from actions.dispatcher import Dispatcher
from config import load_config, setup_logging
from errors import DashboardError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin":  "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def _read_body(request: Request) -> dict:
    if request.method != "POST":
        return {}
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Ignoring unparseable POST body (%d bytes)", len(raw))
        return {}
    return body if isinstance(body, dict) else {}


def create_app(config: Optional[dict] = None, clients: Optional[Clients] = None,
               dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    config = config or load_config()
    dispatcher = dispatcher or Dispatcher(config, clients or build_clients(config))

    app = FastAPI(title="Editorial Dashboard API", docs_url=None, redoc_url=None)
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def cors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    async def handle(request: Request):
        params = dict(request.query_params)
        action = params.get("action")
        body = await _read_body(request)
        try:
            data = await dispatcher.run(action, params, body, method=request.method)
        except DashboardError as exc:
            if exc.status_code >= 500:
                logger.exception("Action %s failed", action)
            else:
                logger.warning("Action %s rejected: %s", action, exc)
            return JSONResponse({"success": False, "error": str(exc)}, status_code=exc.status_code)
        except Exception as exc:
            logger.exception("Action %s failed", action)
            return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
        return JSONResponse({"success": True, "data": data})

    for path in ("/", "/api/data"):
        app.add_api_route(path, handle, methods=["GET", "POST"])

    return app


def _default_app() -> FastAPI:
    setup_logging()
    return create_app()


app = _default_app()
