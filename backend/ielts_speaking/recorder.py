"""
Answer recording and input level metering.

The browser captures the microphone and posts 16-bit little-endian mono PCM
chunks; the recorder buffers them, keeps a 0-100 input level for the level
meter, and on stop returns the finalized clip as WAV.
"""

from __future__ import annotations

import io
import logging
import wave
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .errors import InvalidTransitionError, RecordingActiveError

logger = logging.getLogger(__name__)

# getUserMedia audio constraints the browser should request
CAPTURE_CONSTRAINTS: Dict[str, object] = {
	"echoCancellation": True,
	"noiseSuppression": True,
	"autoGainControl": True,
	"sampleRate": 48000,
}

SAMPLE_WIDTH = 2


class LevelMeter:
	"""Input level computed the way a Web Audio ``AnalyserNode`` reports it.

	Magnitudes of a Blackman-windowed FFT are smoothed over time, converted to
	decibels and scaled to bytes between ``MIN_DB`` and ``MAX_DB``; the level is
	the mean byte value relative to 128, capped at 100.
	"""

	FFT_SIZE = 256
	SMOOTHING = 0.8
	MIN_DB = -100.0
	MAX_DB = -30.0

	def __init__(self) -> None:
		self._window = np.blackman(self.FFT_SIZE)
		self.reset()

	@property
	def bin_count(self) -> int:
		return self.FFT_SIZE // 2

	def reset(self) -> None:
		self._smoothed = np.zeros(self.bin_count)
		self._tail = np.zeros(self.FFT_SIZE)
		self.level = 0.0

	def update(self, samples: np.ndarray) -> float:
		"""Feed float samples in [-1, 1] and return the new level."""
		if samples.size:
			self._tail = np.concatenate([self._tail, samples.astype(np.float64)])[-self.FFT_SIZE:]
		spectrum = np.abs(np.fft.rfft(self._tail * self._window))[: self.bin_count] / self.FFT_SIZE
		self._smoothed = self.SMOOTHING * self._smoothed + (1.0 - self.SMOOTHING) * spectrum
		with np.errstate(divide="ignore"):
			db = 20.0 * np.log10(self._smoothed)
		scaled = (db - self.MIN_DB) * (255.0 / (self.MAX_DB - self.MIN_DB))
		byte_data = np.floor(np.clip(np.nan_to_num(scaled, neginf=0.0), 0.0, 255.0))
		average = float(byte_data.mean())
		self.level = min(100.0, (average / 128.0) * 100.0)
		return self.level


@dataclass(frozen=True)
class AudioClip:
	data: bytes
	sample_rate: int
	frames: Optional[int]
	mime_type: str = "audio/wav"

	@property
	def duration_seconds(self) -> Optional[float]:
		if self.frames is None or not self.sample_rate:
			return None
		return self.frames / self.sample_rate

	@property
	def is_empty(self) -> bool:
		return not self.data or self.frames == 0

	@classmethod
	def from_upload(cls, data: bytes, mime_type: str = "audio/wav") -> "AudioClip":
		"""Wrap an uploaded recording. Only WAV headers are inspected; other
		containers (webm, ogg) are passed to the decoder as-is."""
		if data[:4] == b"RIFF":
			try:
				with wave.open(io.BytesIO(data), "rb") as wav:
					return cls(data=data, sample_rate=wav.getframerate(), frames=wav.getnframes(), mime_type="audio/wav")
			except wave.Error:
				logger.debug("Upload has a RIFF header but is not a readable WAV file")
		return cls(data=data, sample_rate=0, frames=None if data else 0, mime_type=mime_type)


class Recorder:
	"""At most one active recording; buffers are released on every stop path."""

	def __init__(self, sample_rate: int = 48000) -> None:
		self.sample_rate = sample_rate
		self.meter = LevelMeter()
		self.active = False
		self._chunks: List[bytes] = []
		self._remainder = b""

	@property
	def level(self) -> float:
		return self.meter.level

	def start(self, sample_rate: Optional[int] = None) -> None:
		if self.active:
			raise RecordingActiveError("A recording is already in progress")
		self.sample_rate = sample_rate or self.sample_rate
		self._chunks = []
		self._remainder = b""
		self.meter.reset()
		self.active = True
		logger.debug("Recording started at %d Hz", self.sample_rate)

	def feed(self, chunk: bytes) -> float:
		if not self.active:
			raise InvalidTransitionError("No recording in progress")
		data = self._remainder + chunk
		usable = len(data) - (len(data) % SAMPLE_WIDTH)
		self._remainder = data[usable:]
		if usable:
			pcm = data[:usable]
			self._chunks.append(pcm)
			samples = np.frombuffer(pcm, dtype="<i2").astype(np.float32) / 32768.0
			self.meter.update(samples)
		return self.meter.level

	def stop(self) -> AudioClip:
		if not self.active:
			raise InvalidTransitionError("No recording in progress")
		try:
			pcm = b"".join(self._chunks)
			buf = io.BytesIO()
			with wave.open(buf, "wb") as wav:
				wav.setnchannels(1)
				wav.setsampwidth(SAMPLE_WIDTH)
				wav.setframerate(self.sample_rate)
				wav.writeframes(pcm)
			return AudioClip(data=buf.getvalue(), sample_rate=self.sample_rate, frames=len(pcm) // SAMPLE_WIDTH)
		finally:
			self.release()

	def release(self) -> None:
		self.active = False
		self._chunks = []
		self._remainder = b""
		self.meter.reset()
