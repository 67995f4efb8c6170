"""
Answer transcription.

Two strategies share one interface. ``StreamingTranscriber`` assembles text
from results the browser's continuous recognizer posts while the student
speaks. ``BatchTranscriber`` hands the finished recording to a local
faster-whisper model. The strategy is picked once per session from the
capabilities the browser reports.
"""

from __future__ import annotations

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .errors import EmptyTranscriptError, InvalidTransitionError, TranscriptionError, UnsupportedClientError
from .parsing import dedupe_transcript
from .recorder import AudioClip
from .schemas import ClientCapabilities, RecognitionResult
from .settings import Settings

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.7


class Transcriber(ABC):
	name: str = "base"

	def begin(self) -> None:
		"""Start collecting text for a new answer."""

	def add_results(self, results: Iterable[RecognitionResult]) -> str:
		raise InvalidTransitionError(f"{self.name} transcription does not accept recognition results")

	@property
	def interim(self) -> str:
		return ""

	@abstractmethod
	async def finish(self, clip: Optional[AudioClip] = None) -> str:
		"""Return the answer text or raise ``EmptyTranscriptError``."""


class StreamingTranscriber(Transcriber):
	name = "streaming"

	def __init__(self) -> None:
		self._final: List[str] = []
		self._interim = ""

	@property
	def interim(self) -> str:
		return self._interim

	@property
	def final_text(self) -> str:
		return " ".join(self._final)

	def begin(self) -> None:
		self._final = []
		self._interim = ""

	def add_results(self, results: Iterable[RecognitionResult]) -> str:
		interim = ""
		for result in results:
			if not result.alternatives:
				continue
			best = result.alternatives[0]
			text = best.transcript
			# low confidence: prefer the runner-up when the engine offers one
			if best.confidence is not None and best.confidence < CONFIDENCE_THRESHOLD and len(result.alternatives) > 1:
				text = result.alternatives[1].transcript
			if result.is_final:
				self._final.append(text.strip())
			else:
				interim += text
		self._interim = interim
		return self._interim

	async def finish(self, clip: Optional[AudioClip] = None) -> str:
		text = dedupe_transcript(self.final_text)
		self.begin()
		if not text:
			raise EmptyTranscriptError()
		return text


class WhisperService:
	"""Process-wide faster-whisper model, loaded on first use."""

	def __init__(self, model_size: str = "tiny.en", *, device: str = "cpu", compute_type: str = "int8") -> None:
		self.model_size = model_size
		self.device = device
		self.compute_type = compute_type
		self._model = None
		self._lock = asyncio.Lock()

	@property
	def is_loaded(self) -> bool:
		return self._model is not None

	def _load_model(self):
		from faster_whisper import WhisperModel

		logger.info("Loading Whisper model %s on %s (%s)", self.model_size, self.device, self.compute_type)
		return WhisperModel(self.model_size, device=self.device, compute_type=self.compute_type)

	async def load(self):
		async with self._lock:
			if self._model is None:
				self._model = await asyncio.to_thread(self._load_model)
		return self._model

	def _run(self, model, data: bytes) -> str:
		segments, _info = model.transcribe(io.BytesIO(data), language="en", vad_filter=True)
		return " ".join(segment.text.strip() for segment in segments).strip()

	async def transcribe(self, clip: AudioClip) -> str:
		try:
			model = await self.load()
			text = await asyncio.to_thread(self._run, model, clip.data)
		except Exception as err:
			logger.exception("Whisper transcription failed")
			raise TranscriptionError(f"Transcription failed: {err}") from err
		return text


class BatchTranscriber(Transcriber):
	name = "batch"

	def __init__(self, whisper: WhisperService) -> None:
		self.whisper = whisper

	async def finish(self, clip: Optional[AudioClip] = None) -> str:
		if clip is None or clip.is_empty:
			raise EmptyTranscriptError("No audio was recorded for this answer.")
		text = dedupe_transcript(await self.whisper.transcribe(clip))
		if not text:
			raise EmptyTranscriptError()
		return text


def select_transcriber(
	capabilities: ClientCapabilities,
	settings: Settings,
	whisper: Optional[WhisperService] = None,
) -> Transcriber:
	if not capabilities.speech_synthesis:
		raise UnsupportedClientError(
			"This browser cannot play the examiner's voice.",
			remediation="Use a recent version of Chrome or Edge.",
		)
	if capabilities.speech_recognition:
		return StreamingTranscriber()
	if capabilities.media_recorder and capabilities.audio_context and settings.batch_transcription_enabled and whisper is not None:
		return BatchTranscriber(whisper)
	raise UnsupportedClientError(
		"Speech recognition is not supported in this browser.",
		remediation="Use Chrome or Edge for live recognition, or enable batch transcription on the server.",
	)
