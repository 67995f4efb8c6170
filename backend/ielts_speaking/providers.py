from __future__ import annotations

import logging
from typing import Dict, Optional

from . import examiner, feedback
from .gemini_client import GeminiClient
from .perplexity_client import PerplexityClient
from .schemas import CueCard, Difficulty, GeneratedCueCard
from .settings import Settings

logger = logging.getLogger(__name__)


class LLMProviders:
	"""Owns the hosted LLM clients for the lifetime of the app.

	Clients are created on first use so the server starts without API keys;
	a missing key surfaces as ``ProviderConfigError`` on the call that needs it.
	"""

	def __init__(self, settings: Settings) -> None:
		self.settings = settings
		self._perplexity: Optional[PerplexityClient] = None
		self._gemini: Optional[GeminiClient] = None

	def perplexity(self) -> PerplexityClient:
		if self._perplexity is None:
			self._perplexity = PerplexityClient(
				self.settings.perplexity_api_key,
				base_url=self.settings.perplexity_base_url,
				model=self.settings.perplexity_model,
				timeout=self.settings.llm_timeout_seconds,
			)
		return self._perplexity

	def gemini(self) -> GeminiClient:
		if self._gemini is None:
			self._gemini = GeminiClient(
				self.settings.gemini_api_key,
				model=self.settings.gemini_model,
				timeout=self.settings.llm_timeout_seconds,
			)
		return self._gemini

	def status(self) -> Dict[str, object]:
		return {
			"perplexity_configured": bool(self.settings.perplexity_api_key),
			"gemini_configured": bool(self.settings.gemini_api_key),
			"question_provider": self.settings.question_provider,
			"feedback_provider": self.settings.feedback_provider,
		}

	async def aclose(self) -> None:
		if self._perplexity is not None:
			await self._perplexity.aclose()
		if self._gemini is not None:
			await self._gemini.aclose()


def _as_cue_card(card: GeneratedCueCard) -> CueCard:
	return CueCard(title=card.main_topic, prompts=list(card.points))


class ExaminerService:
	"""Question and feedback generation for the exam controller."""

	def __init__(self, providers: LLMProviders) -> None:
		self.providers = providers

	@property
	def _use_gemini_questions(self) -> bool:
		return self.providers.settings.question_provider == "gemini"

	@property
	def _use_gemini_feedback(self) -> bool:
		return self.providers.settings.feedback_provider == "gemini"

	async def follow_up_question(self, topic: str, previous_response: str, difficulty: Difficulty, part: int) -> str:
		if self._use_gemini_questions:
			return await examiner.generate_follow_up_with_gemini(
				self.providers.gemini(), topic, previous_response, difficulty, part
			)
		return await examiner.generate_follow_up_question(
			self.providers.perplexity(), topic, previous_response, difficulty, part
		)

	async def cue_card(self, topic: Optional[str] = None) -> CueCard:
		if self._use_gemini_questions:
			card = await examiner.generate_cue_card_with_gemini(self.providers.gemini())
		else:
			card = await examiner.generate_part2_cue_card(self.providers.perplexity(), topic)
		return _as_cue_card(card)

	async def session_feedback(self, transcript: str, question: str, current_band: float, part: int) -> str:
		if self._use_gemini_feedback:
			return await feedback.generate_speaking_feedback_with_gemini(
				self.providers.gemini(), transcript, question, current_band, part
			)
		return await feedback.generate_speaking_feedback(
			self.providers.perplexity(), transcript, question, current_band, part
		)
