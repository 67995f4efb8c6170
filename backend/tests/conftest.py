"""Shared fixtures: a fake examiner, a fresh controller and an app on in-memory SQLite."""

import random
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ielts_speaking.controller import ExamController
from ielts_speaking.main import create_app
from ielts_speaking.schemas import ClientCapabilities, CueCard
from ielts_speaking.settings import Settings
from ielts_speaking.speech import SpeechQueue


class FakeExaminer:
	"""Stands in for ExaminerService; every generator is an AsyncMock."""

	def __init__(self):
		self.follow_up_question = AsyncMock(return_value="What do you usually do at weekends?")
		self.cue_card = AsyncMock(
			return_value=CueCard(
				title="Describe a memorable journey",
				prompts=["Where you went", "Who you went with", "Why it was memorable"],
			)
		)
		self.session_feedback = AsyncMock(return_value="**STRENGTHS:**\n- Clear answers\n\nOverall band 6.5")


@pytest.fixture
def examiner():
	return FakeExaminer()


@pytest.fixture
def speech():
	return SpeechQueue()


@pytest.fixture
async def controller(examiner, speech):
	ctrl = ExamController(examiner, speech, prep_seconds=60, rng=random.Random(7))
	yield ctrl
	ctrl.close()


@pytest.fixture
def streaming_capabilities():
	return ClientCapabilities(speech_recognition=True, speech_synthesis=True, media_recorder=True, audio_context=True)


@pytest.fixture
def test_settings():
	return Settings(
		_env_file=None,
		database_url="sqlite://",
		batch_transcription_enabled=False,
		perplexity_api_key="pplx-test",
		gemini_api_key=None,
		prep_seconds=60,
	)


@pytest.fixture
def app(test_settings, examiner):
	return create_app(test_settings, examiner=examiner)


@pytest.fixture
def client(app):
	with TestClient(app) as c:
		yield c


@pytest.fixture
def signup(client):
	def _signup(email="student@example.com", name="Student", password="secret123"):
		r = client.post("/auth/signup", json={"email": email, "name": name, "password": password})
		assert r.status_code == 201, r.text
		return {"Authorization": f"Bearer {r.json()['access_token']}"}

	return _signup


@pytest.fixture
def auth_headers(signup):
	return signup()
