"""FastAPI WebSocket server for the Durak card game."""

import logging
import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from config import config
from context import ServerContext
from handlers import HANDLERS, ConnectionContext
from logging_config import setup_logging, player_id_var, session_id_var
from middleware.request_id import RequestIDMiddleware
from routers.health import router as health_router, set_health_dependencies
from routers.stats import router as stats_router, set_stats_service

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)

server_context = ServerContext(config=config)
set_stats_service(server_context.stats)
set_health_dependencies(server_context)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Durak server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await server_context.close_all_websockets()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Durak Card Game",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)

app.include_router(stats_router)
app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    player_id_var.set(connection_id)
    logger.debug(f"WebSocket connected as {connection_id}")

    ctx = ConnectionContext(websocket=websocket, player_id=connection_id)

    # Shared dependencies passed to every handler
    handler_deps = dict(server=server_context)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                logger.debug("Ignoring malformed JSON message")
                continue
            if not isinstance(data, dict):
                continue

            handler = HANDLERS.get(data.get("type"))
            if not handler:
                logger.debug(f"Unknown message type: {data.get('type')!r}")
                continue

            room = server_context.room_manager.find_player_room(connection_id)
            session_id_var.set(room.code if room else None)
            try:
                await handler(data, ctx, **handler_deps)
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception(f"Handler {data.get('type')} failed")
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {connection_id} disconnected")
    finally:
        await server_context.handle_disconnect(connection_id)


# Serve static files if client directory exists
client_path = os.path.join(os.path.dirname(__file__), "..", "client")
if os.path.exists(client_path):
    @app.get("/")
    async def serve_index():
        return FileResponse(os.path.join(client_path, "index.html"))

    # Mount static files for everything else (JS, CSS, SVG, etc.)
    app.mount("/", StaticFiles(directory=client_path), name="static")


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Durak server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
