from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["examiner", "student"]
Difficulty = Literal["easy", "medium", "hard"]
Plan = Literal["free", "standard", "premium"]


class Message(BaseModel):
	"""One turn of the practice transcript. Frozen once created."""

	model_config = ConfigDict(frozen=True)

	id: str = Field(default_factory=lambda: uuid.uuid4().hex)
	role: Role
	text: str
	timestamp: datetime = Field(default_factory=datetime.utcnow)


class CueCard(BaseModel):
	title: str
	prompts: List[str]


class ImportedQuestionBank(BaseModel):
	model_config = ConfigDict(frozen=True, populate_by_name=True)

	name: str
	part1_questions: List[str] = Field(alias="part1Questions")
	part2_cue_card: Optional[CueCard] = Field(default=None, alias="part2CueCard")
	part3_questions: List[str] = Field(alias="part3Questions")


class GeneratedCueCard(BaseModel):
	"""Cue card produced by an LLM rather than a bank."""

	main_topic: str = Field(alias="mainTopic")
	description: str = "You should say:"
	points: List[str] = Field(default_factory=list)
	final_prompt: Optional[str] = Field(default=None, alias="finalPrompt")

	model_config = ConfigDict(populate_by_name=True)


class RelevanceResult(BaseModel):
	is_relevant: bool = Field(alias="isRelevant")
	reason: str = ""
	score: float = 5

	model_config = ConfigDict(populate_by_name=True)


class MockTest(BaseModel):
	part1: List[str]
	part2: GeneratedCueCard
	part3: List[str]


class Utterance(BaseModel):
	"""A line queued for the browser's speech synthesis engine."""

	id: str = Field(default_factory=lambda: uuid.uuid4().hex)
	text: str
	rate: float = 0.9
	pitch: float = 1.0
	volume: float = 1.0
	lang: str = "en-GB"


class RecognitionAlternative(BaseModel):
	transcript: str
	confidence: Optional[float] = None


class RecognitionResult(BaseModel):
	"""One result from the browser's continuous speech recognition engine."""

	is_final: bool = Field(default=False, alias="isFinal")
	alternatives: List[RecognitionAlternative] = Field(default_factory=list)

	model_config = ConfigDict(populate_by_name=True)


class ClientCapabilities(BaseModel):
	"""Speech and audio primitives the browser reports at session creation."""

	speech_recognition: bool = Field(default=False, alias="speechRecognition")
	speech_synthesis: bool = Field(default=False, alias="speechSynthesis")
	media_recorder: bool = Field(default=False, alias="mediaRecorder")
	audio_context: bool = Field(default=False, alias="audioContext")

	model_config = ConfigDict(populate_by_name=True)
