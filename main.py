"""Application entry point.

Run with:
    uvicorn main:create_production_app --factory
"""

import logging
from contextlib import asynccontextmanager

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI

from api.appointments import create_appointment_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionManager
from auth.tokens import TokenService
from clients.llm_client import LLMClient
from clients.postgres_client import PostgresClient
from clients.speech_client import SpeechToTextClient
from clients.vault_client import get_database_url, get_jwt_config, get_openai_config
from core.config import DEFAULT_MAX_AUDIO_BYTES, IntakeConfig
from core.database import AppointmentDatabase
from core.extraction import AppointmentExtractor
from core.services.appointment_service import AppointmentService
from core.validation import SchedulingValidator

logger = logging.getLogger(__name__)


def create_app(
    auth_service: AuthService,
    appointment_service: AppointmentService,
    tokens: TokenService,
    postgres: PostgresClient | None = None,
    closeables: list | None = None,
    max_audio_bytes: int = DEFAULT_MAX_AUDIO_BYTES,
) -> FastAPI:
    """Wire routers, middleware and error handlers around ready services.

    Args:
        auth_service: Account and session flows
        appointment_service: Audio intake and confirmation
        tokens: Validates bearer tokens on protected routes
        postgres: Checked by /health when given
        closeables: Objects with close(), closed on shutdown
        max_audio_bytes: Largest upload /UploadAudio will read
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up")
        yield
        logger.info("Application shutting down")
        for resource in closeables or []:
            resource.close()

    app = FastAPI(title="Scheduler API", version="1.0.0", lifespan=lifespan)

    # Last added runs first: request IDs exist before auth can reject
    app.add_middleware(AuthMiddleware, tokens=tokens)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    app.include_router(create_auth_router(auth_service), prefix="/auth")
    app.include_router(create_appointment_router(appointment_service, max_audio_bytes))

    @app.get("/health")
    def health():
        if postgres is None:
            return {"status": "healthy"}
        try:
            postgres.ping()
        except psycopg2.Error as e:
            logger.warning(f"Database health check failed: {type(e).__name__}")
            return {"status": "degraded", "database": "unavailable"}
        return {"status": "healthy", "database": "ok"}

    return app


def create_production_app() -> FastAPI:
    """Build every client from Vault secrets and return the app.

    Fails fast if Vault, the signing key, or the API key is unavailable.
    """
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    auth_config = AuthConfig()
    intake_config = IntakeConfig()

    postgres = PostgresClient(get_database_url())
    tokens = TokenService(get_jwt_config()["signing_key"], auth_config)
    api_key = get_openai_config()["api_key"]

    speech = SpeechToTextClient(
        api_key=api_key,
        model=intake_config.transcription_model,
        base_url=intake_config.api_base_url,
        timeout_seconds=intake_config.request_timeout_seconds,
    )
    llm = LLMClient(
        api_key=api_key,
        model=intake_config.extraction_model,
        base_url=intake_config.api_base_url,
        timeout_seconds=intake_config.request_timeout_seconds,
    )

    auth_db = AuthDatabase(postgres)
    auth_service = AuthService(
        config=auth_config,
        auth_db=auth_db,
        session_manager=SessionManager(auth_db, tokens, auth_config),
        tokens=tokens,
        security_logger=SecurityLogger(postgres),
    )
    appointment_service = AppointmentService(
        speech=speech,
        extractor=AppointmentExtractor(llm),
        validator=SchedulingValidator(),
        appointments=AppointmentDatabase(postgres),
        client_timezone=intake_config.client_timezone,
        max_audio_bytes=intake_config.max_audio_bytes,
    )

    return create_app(
        auth_service,
        appointment_service,
        tokens,
        postgres=postgres,
        closeables=[speech, llm, postgres],
        max_audio_bytes=intake_config.max_audio_bytes,
    )
