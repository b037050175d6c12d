import socket
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

import database
from config import settings
from log_config import RequestIdMiddleware, setup_logging
from responses import envelope, install_exception_handlers
from routes.equipment import router as equipment_router
from routes.expenses import router as expenses_router
from routes.inquiries import router as inquiries_router
from routes.labour import router as labour_router
from routes.notifications import router as notifications_router
from routes.projects import router as projects_router
from routes.purchases import router as purchases_router
from routes.tasks import router as tasks_router
from routes.users import router as users_router
from storage import storage

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        db = database.connect()
        db.command("ping")
    except PyMongoError as e:
        log.error("database_connection_failed", error=str(e))
        sys.exit(1)
    yield
    database.disconnect()


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    app.include_router(users_router)
    app.include_router(projects_router)
    app.include_router(tasks_router)
    app.include_router(equipment_router)
    app.include_router(expenses_router)
    app.include_router(labour_router)
    app.include_router(purchases_router)
    app.include_router(inquiries_router)
    app.include_router(notifications_router)

    # serve uploaded receipts
    app.mount("/uploads", StaticFiles(directory=str(storage.base_dir)), name="uploads")

    @app.get("/")
    def read_root():
        return envelope(message="API Working")

    @app.get("/api/healthcheck")
    def healthcheck():
        db_status = "ok"
        try:
            database.get_db().command("ping")
        except (HTTPException, PyMongoError) as e:
            db_status = "unavailable"
            log.warning("healthcheck_db_failed", error=str(e))
        return envelope({"status": "ok", "database": db_status, "time": datetime.now(timezone.utc).isoformat()})

    return app


app = create_app()


def bind_listener(host: str, start: int, attempts: int) -> socket.socket:
    """Bind and listen on the first free port from ``start``; the open socket is what gets served."""
    for port in range(start, start + attempts):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
            sock.listen(2048)
        except OSError:
            sock.close()
            log.warning("port_busy", port=port, next_port=port + 1)
            continue
        sock.set_inheritable(True)
        return sock
    raise RuntimeError(f"No free port in {start}-{start + attempts - 1}")


def run() -> None:
    import uvicorn
    sock = bind_listener(settings.host, settings.port, settings.port_retry_attempts)
    log.info("server_starting", host=settings.host, port=sock.getsockname()[1])
    server = uvicorn.Server(uvicorn.Config(app, log_config=None))
    server.run(sockets=[sock])


if __name__ == "__main__":
    run()
