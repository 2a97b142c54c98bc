# app/main.py
# Start backend using uvicorn app.main:app --reload --host 0.0.0.0
import logging
import logging.config
import logging.handlers
import json
import pathlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute, APIWebSocketRoute
from app.core.config import settings
from app.api import auth as auth_router
from app.api import monitoring as monitoring_router
from app.api import rooms as rooms_router
from app.api import users as users_router
from app.api import websockets as websocket_router
from app.db.base import Base # Table creation, there are no migrations
from app.db.session import engine
from app.services import session_manager

_queue_handler_instance: Optional[logging.handlers.QueueHandler] = None # Module-level variable

async def metrics_middleware(request: Request, call_next):
    api_stats = monitoring_router.api_stats
    api_stats["total_requests"] += 1
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            api_stats["errors_5xx"] += 1
        return response
    except Exception as e:
        api_stats["errors_5xx"] += 1
        logger.critical(f"Unhandled exception while serving {request.method} {request.url.path}: {e}", exc_info=True)
        raise e


def _fallback_logging(reason: str):
    print(f"ERROR: {reason}. Falling back to basic stdout logging.")
    logging.basicConfig(level=logging.INFO, format='%(levelname)-8s [%(name)s] %(message)s')
    logging.getLogger("app.main.logging_setup_fallback").error(reason, exc_info=True)


def configure_logging_from_file():
    """Applies app/logging_config.json and remembers its QueueHandler so lifespan can run the listener."""
    global _queue_handler_instance
    config_file = pathlib.Path(__file__).parent / "logging_config.json"
    try:
        config = json.loads(config_file.read_text())
        pathlib.Path("logs").mkdir(exist_ok=True) # Rotating file handler target
        logging.config.dictConfig(config)
    except FileNotFoundError:
        _fallback_logging(f"Logging configuration file not found at {config_file}")
        return
    except json.JSONDecodeError as e:
        _fallback_logging(f"Could not parse logging configuration {config_file}: {e}")
        return
    except (ValueError, OSError) as e:
        _fallback_logging(f"Failed to configure logging from {config_file}: {e}")
        return

    _queue_handler_instance = next(
        (h for h in logging.getLogger().handlers if isinstance(h, logging.handlers.QueueHandler)), None
    )
    if _queue_handler_instance is None:
        logging.getLogger("app.main.logging_setup_check").error(
            "QueueHandler not found in root logger. Log records will not reach the stdout and file handlers."
        )


# Configure logging when the module is loaded. Listener is started/stopped by lifespan.
configure_logging_from_file()
logger = logging.getLogger("app.main") # Logger for this module

def create_tables():
    Base.metadata.create_all(bind=engine)
create_tables()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup sequence initiated...")
    if _queue_handler_instance and hasattr(_queue_handler_instance, 'listener'):
        try:
            _queue_handler_instance.listener.start()
            logger.info("Logging QueueListener started successfully via lifespan.")
        except Exception as e:
            logger.error(f"Failed to start QueueListener in lifespan: {e}", exc_info=True)
    else:
        logger.warning("QueueHandler or its listener not found during startup; off-thread logging might not be active.")

    yield  # This is where the application will run

    logger.info("Application shutdown sequence initiated...")
    for room_code in list(websocket_router.active_transition_tasks.keys()):
        websocket_router._cancel_transition(room_code)
    session_manager.cleanup_all()

    if _queue_handler_instance and hasattr(_queue_handler_instance, 'listener'):
        try:
            logger.info("Attempting to stop Logging QueueListener...")
            _queue_handler_instance.listener.stop()
        except Exception as e:
            logger.error(f"Failed to stop QueueListener gracefully in lifespan: {e}", exc_info=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)
app.middleware("http")(metrics_middleware)  # Add the metrics middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(auth_router.router, prefix=settings.API_V1_STR + "/auth", tags=["Auth"])
app.include_router(users_router.router, prefix=settings.API_V1_STR + "/users", tags=["Users"])
app.include_router(rooms_router.router, prefix=settings.API_V1_STR + "/rooms", tags=["Rooms"])
app.include_router(monitoring_router.router, prefix=settings.API_V1_STR + "/monitoring", tags=["Monitoring"])
app.include_router(websocket_router.router, tags=["Game Sockets"]) # WebSockets usually don't have API prefix

logger.info("--- FastAPI Registered Routes ---")
for route in app.routes:
    if isinstance(route, APIRoute):
        logger.info(f"Path: {route.path}, Methods: {route.methods}, Name: {route.name}")
    elif isinstance(route, APIWebSocketRoute):
        logger.info(f"WebSocket Path: {route.path}, Name: {route.name}")
logger.info("--- End Registered Routes ---\n")


@app.get(settings.API_V1_STR + "/health", tags=["Health Check"])
async def health_check():
    return {"status": "healthy", "project": settings.PROJECT_NAME}

# For development with uvicorn: uvicorn app.main:app --reload
