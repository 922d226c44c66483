"""HTTP exposure of the LAN responder for peer devices."""

import logging

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from admin_carrier.config import Config
from admin_carrier.errors import NotFound
from admin_carrier.server.responder import LocalResponder, get_local_server_url

logger = logging.getLogger(__name__)


def create_app(responder: LocalResponder) -> FastAPI:
    """Build the read-only FastAPI app around a responder."""
    app = FastAPI(title="Admin Carrier LAN responder", docs_url=None,
                  redoc_url=None, openapi_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Plain def: FastAPI runs it in a worker thread, each request
    # opens its own SQLite connection.
    @app.get("/{path:path}")
    def serve(path: str):
        try:
            return responder.handle("/" + path)
        except NotFound as e:
            raise HTTPException(status_code=404, detail=str(e))

    return app


def run_server(responder: LocalResponder, host: str | None = None,
               port: int | None = None):
    """Serve the responder on the LAN until interrupted."""
    host = host or Config.LAN_HOST
    port = port or Config.LAN_PORT
    logger.info("LAN responder listening on %s:%d (peers use %s)",
                host, port,
                get_local_server_url(port, Config.LAN_ADVERTISE_HOST))
    uvicorn.run(create_app(responder), host=host, port=port,
                log_level=Config.LOG_LEVEL.lower())
