from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from .controller import ExamController, ExamState, QuestionGenerator
from .errors import (
	EmptyTranscriptError,
	InvalidTransitionError,
	MicrophonePermissionError,
	PracticeError,
	SessionNotFoundError,
	TranscriptionError,
	UnsupportedClientError,
)
from .recorder import CAPTURE_CONSTRAINTS, AudioClip, Recorder
from .schemas import ClientCapabilities, RecognitionResult
from .settings import Settings
from .speech import SpeechQueue
from .transcription import BatchTranscriber, Transcriber, WhisperService, select_transcriber

logger = logging.getLogger(__name__)

ANSWERING_STATES = (ExamState.PHASE1, ExamState.PHASE2_PREP, ExamState.PHASE2_SPEAKING, ExamState.PHASE3)

MIC_REMEDIATION = (
	"Allow microphone access in your browser's site settings, check that a microphone "
	"is connected, then reload the page."
)


def client_error(kind: str, message: Optional[str] = None) -> PracticeError:
	"""Map an error the browser reports to the matching practice error."""
	if kind in ("not-allowed", "service-not-allowed", "permission-denied"):
		return MicrophonePermissionError(
			message or "Microphone access was denied.",
			remediation=MIC_REMEDIATION,
		)
	if kind == "audio-capture":
		return MicrophonePermissionError(message or "No microphone was found.", remediation=MIC_REMEDIATION)
	if kind == "no-speech":
		return EmptyTranscriptError()
	if kind == "unsupported":
		return UnsupportedClientError(
			message or "Speech features are not available in this browser.",
			remediation="Use a recent version of Chrome or Edge.",
		)
	return TranscriptionError(message or f"Speech recognition error: {kind}")


class PracticeSession:
	"""One student's exam: controller, recorder, transcriber and voice queue.

	Turns are processed one at a time under ``lock``.
	"""

	def __init__(
		self,
		controller: ExamController,
		transcriber: Transcriber,
		speech: SpeechQueue,
		*,
		recorder: Optional[Recorder] = None,
		user_id: Optional[str] = None,
		session_id: Optional[str] = None,
	) -> None:
		self.id = session_id or uuid.uuid4().hex
		self.user_id = user_id
		self.controller = controller
		self.transcriber = transcriber
		self.speech = speech
		self.recorder = recorder or Recorder()
		self.created_at = datetime.utcnow()
		self.last_active = self.created_at
		self.lock = asyncio.Lock()

	def touch(self) -> None:
		self.last_active = datetime.utcnow()

	def _require_answering(self) -> None:
		if self.controller.state not in ANSWERING_STATES:
			raise InvalidTransitionError("There is no question to answer right now")

	async def start(self) -> None:
		async with self.lock:
			await self.controller.start()

	async def submit_answer(self, transcript: str) -> None:
		async with self.lock:
			await self.controller.answer(transcript)

	def add_recognition(self, results: Iterable[RecognitionResult]) -> str:
		return self.transcriber.add_results(results)

	async def start_recording(self, sample_rate: Optional[int] = None) -> None:
		async with self.lock:
			self._require_answering()
			# the student never talks over the examiner
			self.speech.cancel()
			self.recorder.start(sample_rate)
			self.transcriber.begin()

	def feed_audio(self, chunk: bytes) -> float:
		return self.recorder.feed(chunk)

	async def stop_recording(self) -> str:
		async with self.lock:
			clip = self.recorder.stop()
			logger.debug("Session %s recorded %s s of audio", self.id, clip.duration_seconds)
			text = await self.transcriber.finish(clip)
			await self.controller.answer(text)
			return text

	async def transcribe_upload(self, data: bytes, mime_type: str = "audio/wav") -> str:
		if not isinstance(self.transcriber, BatchTranscriber):
			raise UnsupportedClientError("This session transcribes in the browser; post recognition results instead.")
		async with self.lock:
			self._require_answering()
			if self.recorder.active:
				raise InvalidTransitionError("Stop the active recording before uploading audio")
			text = await self.transcriber.finish(AudioClip.from_upload(data, mime_type))
			await self.controller.answer(text)
			return text

	def report_client_error(self, kind: str, message: Optional[str] = None) -> PracticeError:
		logger.warning("Session %s client error %s: %s", self.id, kind, message)
		self.recorder.release()
		self.transcriber.begin()
		return client_error(kind, message)

	async def reset(self) -> None:
		async with self.lock:
			self.recorder.release()
			self.transcriber.begin()
			await self.controller.reset()

	def close(self) -> None:
		self.recorder.release()
		self.controller.close()

	def snapshot(self) -> dict:
		pending = self.speech.pending
		return {
			"id": self.id,
			"created_at": self.created_at,
			"transcriber": self.transcriber.name,
			"recording": self.recorder.active,
			"level": self.recorder.level,
			"interim": self.transcriber.interim,
			"capture_constraints": CAPTURE_CONSTRAINTS,
			"pending_utterance": pending.model_dump() if pending is not None else None,
			**self.controller.snapshot(),
		}


class SessionRegistry:
	"""Live practice sessions, owned by the app and closed at shutdown."""

	def __init__(self, settings: Settings, examiner: QuestionGenerator, whisper: Optional[WhisperService] = None) -> None:
		self.settings = settings
		self.examiner = examiner
		self.whisper = whisper
		self._sessions: Dict[str, PracticeSession] = {}

	def __len__(self) -> int:
		return len(self._sessions)

	def create(self, capabilities: ClientCapabilities, user_id: Optional[str] = None) -> PracticeSession:
		self.evict_idle()
		transcriber = select_transcriber(capabilities, self.settings, self.whisper)
		speech = SpeechQueue()
		controller = ExamController(self.examiner, speech, prep_seconds=self.settings.prep_seconds)
		session = PracticeSession(controller, transcriber, speech, user_id=user_id)
		self._sessions[session.id] = session
		logger.info("Created practice session %s (%s transcription)", session.id, transcriber.name)
		return session

	def get(self, session_id: str, user_id: Optional[str] = None) -> PracticeSession:
		self.evict_idle()
		session = self._sessions.get(session_id)
		if session is None or session.user_id != user_id:
			raise SessionNotFoundError()
		session.touch()
		return session

	def remove(self, session_id: str, user_id: Optional[str] = None) -> None:
		session = self.get(session_id, user_id)
		del self._sessions[session_id]
		session.close()
		logger.info("Closed practice session %s", session_id)

	def evict_idle(self, now: Optional[datetime] = None) -> int:
		"""Close sessions idle for longer than ``session_idle_minutes``."""
		cutoff = (now or datetime.utcnow()) - timedelta(minutes=self.settings.session_idle_minutes)
		stale = [sid for sid, session in self._sessions.items() if session.last_active < cutoff]
		for sid in stale:
			self._sessions.pop(sid).close()
			logger.info("Evicted idle practice session %s", sid)
		return len(stale)

	def close_all(self) -> None:
		for session in self._sessions.values():
			session.close()
		self._sessions.clear()
