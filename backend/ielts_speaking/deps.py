from fastapi import Depends, Request

from .providers import ExaminerService, LLMProviders
from .routers.auth import User, get_current_user
from .sessions import PracticeSession, SessionRegistry


def get_providers(request: Request) -> LLMProviders:
	return request.app.state.providers


def get_examiner(request: Request) -> ExaminerService:
	return request.app.state.examiner


def get_registry(request: Request) -> SessionRegistry:
	return request.app.state.sessions


def get_session(
	session_id: str,
	registry: SessionRegistry = Depends(get_registry),
	user: User = Depends(get_current_user),
) -> PracticeSession:
	return registry.get(session_id, user.id)
