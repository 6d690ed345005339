# mentorpulse/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mentorpulse.api import auth, chat, progress, realtime, session
from mentorpulse.config import settings
from mentorpulse.database import Base, SessionLocal, engine
from mentorpulse.exceptions import MentorPulseError
from mentorpulse.logging_config import setup_logging
from mentorpulse.realtime.gateway import ChatGateway
from mentorpulse.realtime.hub import RealtimeHub
from mentorpulse.realtime.presence import PresenceRegistry
from mentorpulse.services.chat_service import ChatDeliveryEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)

    presence = PresenceRegistry()
    hub = RealtimeHub()
    chat_engine = ChatDeliveryEngine(presence, hub)
    app.state.presence = presence
    app.state.hub = hub
    app.state.chat_engine = chat_engine
    app.state.gateway = ChatGateway(presence, hub, chat_engine, session_factory=SessionLocal)
    logger.info("MentorPulse API started (%s)", settings.APP_ENV)

    yield

    hub.clear()
    presence.clear()
    logger.info("MentorPulse API stopped")


# Initialize FastAPI app
app = FastAPI(title="MentorPulse API", lifespan=lifespan)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ======================
# ERROR HANDLERS
# ======================
def _failure(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


@app.exception_handler(MentorPulseError)
async def mentorpulse_error_handler(request: Request, exc: MentorPulseError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _failure(exc.status_code, exc.message, headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _failure(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _failure(400, message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _failure(503, "Storage temporarily unavailable")


# API routers
app.include_router(auth.router)      # /auth/*
app.include_router(chat.router)      # /chat/*
app.include_router(session.router)   # /sessions/*
app.include_router(progress.router)  # /progress/*
app.include_router(realtime.router)  # /ws


@app.get("/health")
def health_check():
    return {
        "success": True,
        "status": "healthy",
        "message": "MentorPulse API is running",
        "version": "1.0.0",
    }
