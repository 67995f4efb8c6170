from __future__ import annotations

import logging
from typing import Optional

from .schemas import Utterance

logger = logging.getLogger(__name__)


class SpeechQueue:
	"""Examiner voice output for one practice session.

	The browser's speech synthesis engine plays whatever utterance is pending
	and reports completion. Only one utterance is pending at a time: ``speak``
	cancels the previous one first.
	"""

	def __init__(self, *, rate: float = 0.9, pitch: float = 1.0, volume: float = 1.0, lang: str = "en-GB") -> None:
		self.rate = rate
		self.pitch = pitch
		self.volume = volume
		self.lang = lang
		self._pending: Optional[Utterance] = None

	@property
	def pending(self) -> Optional[Utterance]:
		return self._pending

	async def speak(self, text: str) -> Utterance:
		self.cancel()
		utterance = Utterance(text=text, rate=self.rate, pitch=self.pitch, volume=self.volume, lang=self.lang)
		self._pending = utterance
		return utterance

	def complete(self, utterance_id: str) -> bool:
		"""Mark the pending utterance as played. Stale ids are ignored."""
		if self._pending is None or self._pending.id != utterance_id:
			return False
		self._pending = None
		return True

	def cancel(self) -> None:
		if self._pending is not None:
			logger.debug("Cancelling pending utterance %s", self._pending.id)
			self._pending = None
