"""
Exam turn-taking controller.

Drives one practice session through the three IELTS speaking parts:

	NOT_STARTED -> PHASE1 -> PHASE2_PREP -> PHASE2_SPEAKING -> PHASE3 -> FINISHED

Every legal move is a row in ``TRANSITIONS``; anything else raises
``InvalidTransitionError``. Questions come from the selected source (an
imported bank or a built-in topic bank) and fall back to the LLM examiner when
the source has none for a part. Each examiner line is appended to the
transcript and handed to the speech queue.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Set, Tuple

from . import question_banks
from .errors import EmptyTranscriptError, InvalidTransitionError, TopicRequiredError, UnknownTopicError
from .schemas import CueCard, Difficulty, ImportedQuestionBank, Message, Role

logger = logging.getLogger(__name__)

PHASE1_QUOTA = 4
TOTAL_QUOTA = 10
FEEDBACK_QUESTION = "Complete IELTS Speaking Test"
FEEDBACK_BAND = 6.0
FEEDBACK_PART = 2

GREETING = (
	"Hello! Welcome to the IELTS Speaking test. I'm your examiner today. "
	"Let me ask you a few questions about yourself. What's your name?"
)
PART2_INTRO = (
	"Now, we'll move on to Part 2. I'm going to give you a topic and you'll have "
	"1 minute to prepare. Then you should speak for 1-2 minutes."
)
PREP_OVER = "Alright, your preparation time is up. Please begin speaking now."
PART3_INTRO = "Thank you. Now let's discuss some more abstract questions related to this topic."
CLOSING = "Thank you! That's the end of the speaking test. Let me generate your feedback now."
REPEAT_REQUEST = "I'm sorry, could you please repeat that?"

FALLBACK_TOPICS: Dict[int, Tuple[str, Difficulty]] = {
	1: ("Daily Life and Personal Information", "easy"),
	3: ("Abstract Discussion", "hard"),
}


class ExamState(str, enum.Enum):
	NOT_STARTED = "not_started"
	PHASE1 = "phase1"
	PHASE2_PREP = "phase2_prep"
	PHASE2_SPEAKING = "phase2_speaking"
	PHASE3 = "phase3"
	FINISHED = "finished"


class ExamEvent(str, enum.Enum):
	START = "start"
	ANSWER = "answer"
	PREP_EXPIRED = "prep_expired"
	REQUEST_FEEDBACK = "request_feedback"
	RESET = "reset"


PHASE_NUMBERS: Dict[ExamState, int] = {
	ExamState.NOT_STARTED: 1,
	ExamState.PHASE1: 1,
	ExamState.PHASE2_PREP: 2,
	ExamState.PHASE2_SPEAKING: 2,
	ExamState.PHASE3: 3,
	ExamState.FINISHED: 3,
}


class QuestionGenerator(Protocol):
	async def follow_up_question(self, topic: str, previous_response: str, difficulty: Difficulty, part: int) -> str: ...

	async def cue_card(self, topic: Optional[str] = None) -> CueCard: ...

	async def session_feedback(self, transcript: str, question: str, current_band: float, part: int) -> str: ...


class SpeechOutput(Protocol):
	async def speak(self, text: str): ...

	def cancel(self) -> None: ...


def format_cue_card(card: CueCard) -> str:
	prompts = "\n".join(f"{i}. {prompt}" for i, prompt in enumerate(card.prompts, start=1))
	return (
		f"{card.title}\n\nYou should say:\n{prompts}\n\n"
		"You have 1 minute to prepare. You can make notes if you wish."
	)


@dataclass
class QuestionSource:
	"""Where questions come from: an imported bank wins over a topic bank."""

	topic: Optional[str] = None
	bank: Optional[ImportedQuestionBank] = None

	@property
	def is_empty(self) -> bool:
		return self.topic is None and self.bank is None

	@property
	def label(self) -> Optional[str]:
		if self.bank is not None:
			return self.bank.name
		if self.topic is not None:
			return question_banks.QUESTION_TOPICS[self.topic]
		return None

	def questions(self, part: question_banks.Part, rng: random.Random) -> List[str]:
		if self.bank is not None:
			return list(self.bank.part1_questions if part == "part1" else self.bank.part3_questions)
		if self.topic is not None:
			pool = question_banks.get_questions(self.topic, part)
			return question_banks.get_random_questions(self.topic, part, len(pool), rng)
		return []

	def cue_card(self) -> Optional[CueCard]:
		if self.bank is not None:
			return self.bank.part2_cue_card
		if self.topic is not None:
			return question_banks.get_cue_card(self.topic)
		return None


@dataclass(frozen=True)
class TurnPlan:
	"""What the examiner does after a phase-1 or phase-3 answer.

	``action`` is ``"ask"`` (use ``question``), ``"generate"`` (the source has
	no questions for this part) or ``"advance"`` (quota reached or source
	exhausted).
	"""

	action: str
	question: Optional[str] = None


def plan_turn(state: ExamState, questions_asked: int, available: List[str], asked: Set[str]) -> TurnPlan:
	quota = PHASE1_QUOTA if state is ExamState.PHASE1 else TOTAL_QUOTA
	if questions_asked >= quota:
		return TurnPlan("advance")
	if not available:
		return TurnPlan("generate")
	for question in available:
		if question not in asked:
			return TurnPlan("ask", question)
	return TurnPlan("advance")


Handler = Callable[..., Awaitable[None]]


class ExamController:
	def __init__(
		self,
		examiner: QuestionGenerator,
		speech: SpeechOutput,
		*,
		prep_seconds: float = 60.0,
		rng: Optional[random.Random] = None,
	) -> None:
		self.examiner = examiner
		self.speech = speech
		self.prep_seconds = prep_seconds
		self.rng = rng or random.Random()
		self.source = QuestionSource()
		self.state = ExamState.NOT_STARTED
		self.messages: List[Message] = []
		self.questions_asked = 0
		self.asked: Set[str] = set()
		self.current_question: Optional[str] = None
		self.feedback: Optional[str] = None
		self.prep_ends_at: Optional[datetime] = None
		self._prep_task: Optional[asyncio.Task] = None
		self._lock = asyncio.Lock()

	# ------------------------------------------------------------------
	# public API
	# ------------------------------------------------------------------

	@property
	def phase(self) -> int:
		return PHASE_NUMBERS[self.state]

	def select_topic(self, topic: str) -> None:
		if self.state is not ExamState.NOT_STARTED:
			raise InvalidTransitionError("The topic can only be changed before the test starts")
		if not question_banks.is_topic(topic):
			raise UnknownTopicError(topic)
		self.source = QuestionSource(topic=topic)

	def select_bank(self, bank: ImportedQuestionBank) -> None:
		if self.state is not ExamState.NOT_STARTED:
			raise InvalidTransitionError("A question bank can only be loaded before the test starts")
		self.source = QuestionSource(bank=bank)

	async def start(self) -> None:
		await self.dispatch(ExamEvent.START)

	async def answer(self, transcript: str) -> None:
		await self.dispatch(ExamEvent.ANSWER, transcript=transcript)

	async def preparation_expired(self) -> None:
		await self.dispatch(ExamEvent.PREP_EXPIRED)

	async def request_feedback(self) -> Optional[str]:
		await self.dispatch(ExamEvent.REQUEST_FEEDBACK)
		return self.feedback

	async def reset(self) -> None:
		await self.dispatch(ExamEvent.RESET)

	async def dispatch(self, event: ExamEvent, **payload) -> None:
		async with self._lock:
			if event is ExamEvent.RESET:
				self._reset()
				return
			handler = TRANSITIONS.get((self.state, event))
			if handler is None:
				raise InvalidTransitionError(f"Cannot handle {event.value} while {self.state.value}")
			if event is ExamEvent.ANSWER:
				text = (payload.get("transcript") or "").strip()
				if not text:
					raise EmptyTranscriptError()
				payload["transcript"] = text
			logger.debug("Exam event %s in state %s", event.value, self.state.value)
			await handler(self, **payload)

	def close(self) -> None:
		self._cancel_prep_timer()
		self.speech.cancel()

	def transcript_text(self) -> str:
		return "\n\n".join(m.text for m in self.messages if m.role == "student")

	def snapshot(self) -> dict:
		return {
			"state": self.state.value,
			"phase": self.phase,
			"topic": self.source.topic,
			"bank": self.source.bank.name if self.source.bank is not None else None,
			"source_label": self.source.label,
			"questions_asked": self.questions_asked,
			"current_question": self.current_question,
			"prep_ends_at": self.prep_ends_at,
			"messages": [m.model_dump() for m in self.messages],
			"feedback": self.feedback,
		}

	# ------------------------------------------------------------------
	# transition handlers
	# ------------------------------------------------------------------

	async def _on_start(self) -> None:
		if self.source.is_empty:
			raise TopicRequiredError()
		self._set_state(ExamState.PHASE1)
		await self._say(GREETING)

	async def _on_phase1_answer(self, transcript: str) -> None:
		self._add("student", transcript)
		plan = plan_turn(self.state, self.questions_asked, self.source.questions("part1", self.rng), self.asked)
		if plan.action == "advance":
			await self._begin_part2()
		else:
			await self._ask_next(plan, 1, transcript)

	async def _on_long_turn(self, transcript: str) -> None:
		self._cancel_prep_timer()
		self._add("student", transcript)
		self._set_state(ExamState.PHASE3)
		# the transition line uses up one slot of the total quota
		self.questions_asked += 1
		self.current_question = None
		await self._say(PART3_INTRO)

	async def _on_prep_expired(self) -> None:
		self._prep_task = None
		self.prep_ends_at = None
		self._set_state(ExamState.PHASE2_SPEAKING)
		await self._say(PREP_OVER)

	async def _on_phase3_answer(self, transcript: str) -> None:
		self._add("student", transcript)
		plan = plan_turn(self.state, self.questions_asked, self.source.questions("part3", self.rng), self.asked)
		if plan.action == "advance":
			await self._finish()
		else:
			await self._ask_next(plan, 3, transcript)

	async def _on_feedback_requested(self) -> None:
		if self.feedback is None:
			await self._generate_feedback()

	# ------------------------------------------------------------------
	# helpers
	# ------------------------------------------------------------------

	async def _ask_next(self, plan: TurnPlan, part: int, previous_response: str) -> None:
		question = plan.question
		if plan.action == "generate":
			topic, difficulty = FALLBACK_TOPICS[part]
			try:
				question = await self.examiner.follow_up_question(topic, previous_response, difficulty, part)
			except Exception:
				logger.exception("Follow-up question generation failed in part %d", part)
				await self._say(REPEAT_REQUEST)
				return
		self._count_question(question)
		await self._say(question)

	async def _begin_part2(self) -> None:
		card = self.source.cue_card()
		if card is None:
			try:
				card = await self.examiner.cue_card(self.source.label)
			except Exception:
				logger.exception("Cue card generation failed")
				await self._say(REPEAT_REQUEST)
				return
		self._count_question(card.title)
		self._set_state(ExamState.PHASE2_PREP)
		await self._say(f"{PART2_INTRO}\n\n{format_cue_card(card)}")
		self._start_prep_timer()

	async def _finish(self) -> None:
		self._cancel_prep_timer()
		self._set_state(ExamState.FINISHED)
		self.current_question = None
		await self._say(CLOSING)
		await self._generate_feedback()

	async def _generate_feedback(self) -> None:
		try:
			self.feedback = await self.examiner.session_feedback(
				self.transcript_text(), FEEDBACK_QUESTION, FEEDBACK_BAND, FEEDBACK_PART
			)
		except Exception:
			logger.exception("Session feedback generation failed")
			await self._say(REPEAT_REQUEST)

	def _count_question(self, question: str) -> None:
		self.asked.add(question)
		self.questions_asked += 1
		self.current_question = question

	def _add(self, role: Role, text: str) -> Message:
		message = Message(role=role, text=text)
		self.messages.append(message)
		return message

	async def _say(self, text: str) -> None:
		self._add("examiner", text)
		await self.speech.speak(text)

	def _set_state(self, state: ExamState) -> None:
		logger.info("Exam state %s -> %s", self.state.value, state.value)
		self.state = state

	def _start_prep_timer(self) -> None:
		self._cancel_prep_timer()
		self.prep_ends_at = datetime.utcnow() + timedelta(seconds=self.prep_seconds)
		self._prep_task = asyncio.create_task(self._prep_countdown())

	async def _prep_countdown(self) -> None:
		await asyncio.sleep(self.prep_seconds)
		await self.preparation_expired()

	def _cancel_prep_timer(self) -> None:
		task, self._prep_task = self._prep_task, None
		self.prep_ends_at = None
		if task is not None and not task.done() and task is not asyncio.current_task():
			task.cancel()

	def _reset(self) -> None:
		self._cancel_prep_timer()
		self.speech.cancel()
		if self.state is not ExamState.NOT_STARTED:
			logger.info("Exam reset from %s", self.state.value)
		self.state = ExamState.NOT_STARTED
		self.messages = []
		self.questions_asked = 0
		self.asked = set()
		self.current_question = None
		self.feedback = None


TRANSITIONS: Dict[Tuple[ExamState, ExamEvent], Handler] = {
	(ExamState.NOT_STARTED, ExamEvent.START): ExamController._on_start,
	(ExamState.PHASE1, ExamEvent.ANSWER): ExamController._on_phase1_answer,
	(ExamState.PHASE2_PREP, ExamEvent.ANSWER): ExamController._on_long_turn,
	(ExamState.PHASE2_PREP, ExamEvent.PREP_EXPIRED): ExamController._on_prep_expired,
	(ExamState.PHASE2_SPEAKING, ExamEvent.ANSWER): ExamController._on_long_turn,
	(ExamState.PHASE3, ExamEvent.ANSWER): ExamController._on_phase3_answer,
	(ExamState.FINISHED, ExamEvent.REQUEST_FEEDBACK): ExamController._on_feedback_requested,
}
