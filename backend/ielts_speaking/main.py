import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .db import init_db, make_engine, make_session_factory
from .errors import PracticeError
from .providers import ExaminerService, LLMProviders
from .routers import auth, coach, health, practice, topics
from .sessions import SessionRegistry
from .settings import Settings, settings as default_settings
from .transcription import WhisperService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
	logging.basicConfig(
		level=getattr(logging, level.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)


def create_app(
	settings: Optional[Settings] = None,
	*,
	examiner=None,
	whisper: Optional[WhisperService] = None,
) -> FastAPI:
	settings = settings or default_settings

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		engine = make_engine(settings.database_url)
		init_db(engine)
		providers = LLMProviders(settings)
		service = whisper
		if service is None and settings.batch_transcription_enabled:
			service = WhisperService(
				settings.whisper_model,
				device=settings.whisper_device,
				compute_type=settings.whisper_compute_type,
			)
		app.state.settings = settings
		app.state.session_factory = make_session_factory(engine)
		app.state.providers = providers
		app.state.examiner = examiner or ExaminerService(providers)
		app.state.whisper = service
		app.state.sessions = SessionRegistry(settings, app.state.examiner, service)
		logger.info("IELTS speaking API ready (%s)", providers.status())
		try:
			yield
		finally:
			app.state.sessions.close_all()
			await providers.aclose()
			engine.dispose()

	app = FastAPI(title="IELTS Speaking Practice API", lifespan=lifespan)

	@app.exception_handler(PracticeError)
	async def practice_error_handler(request: Request, exc: PracticeError):
		return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

	app.include_router(health.router)
	app.include_router(auth.router)
	app.include_router(topics.router)
	app.include_router(practice.router)
	app.include_router(coach.router)

	@app.get("/info")
	def info(request: Request):
		whisper_service = request.app.state.whisper
		return {
			"status": "ok",
			**request.app.state.providers.status(),
			"batch_transcription": whisper_service is not None,
			"whisper_loaded": bool(whisper_service and whisper_service.is_loaded),
			"active_sessions": len(request.app.state.sessions),
		}

	return app


configure_logging(default_settings.log_level)
app = create_app()
