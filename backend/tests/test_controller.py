import asyncio
import json
import random

import pytest

from ielts_speaking import question_banks
from ielts_speaking.controller import (
	CLOSING,
	GREETING,
	PART2_INTRO,
	PART3_INTRO,
	PREP_OVER,
	REPEAT_REQUEST,
	ExamController,
	ExamEvent,
	ExamState,
	TurnPlan,
	format_cue_card,
	plan_turn,
)
from ielts_speaking.errors import (
	EmptyTranscriptError,
	InvalidTransitionError,
	ProviderHTTPError,
	TopicRequiredError,
	UnknownTopicError,
)
from ielts_speaking.importer import parse_question_bank
from ielts_speaking.schemas import CueCard, ImportedQuestionBank


def make_bank(part1, part3, cue=True, name="Test bank"):
	return ImportedQuestionBank(
		name=name,
		part1_questions=part1,
		part2_cue_card=CueCard(title="Describe a gift you received", prompts=["what it was", "who gave it"]) if cue else None,
		part3_questions=part3,
	)


async def answer_times(controller, n, prefix="answer"):
	for i in range(n):
		await controller.answer(f"{prefix} {i}")


def examiner_texts(controller):
	return [m.text for m in controller.messages if m.role == "examiner"]


class TestPlanTurn:
	def test_asks_first_unused(self):
		assert plan_turn(ExamState.PHASE1, 1, ["a", "b", "c"], {"a"}) == TurnPlan("ask", "b")

	def test_phase1_quota(self):
		assert plan_turn(ExamState.PHASE1, 4, ["a", "b"], set()).action == "advance"

	def test_phase3_quota_counts_all_questions(self):
		assert plan_turn(ExamState.PHASE3, 9, ["x"], set()).action == "ask"
		assert plan_turn(ExamState.PHASE3, 10, ["x"], set()).action == "advance"

	def test_exhausted_source_advances(self):
		assert plan_turn(ExamState.PHASE3, 6, ["a"], {"a"}).action == "advance"

	def test_empty_source_generates(self):
		assert plan_turn(ExamState.PHASE1, 0, [], set()).action == "generate"


def test_format_cue_card():
	card = CueCard(title="Describe a book", prompts=["what", "why"])
	assert format_cue_card(card) == (
		"Describe a book\n\nYou should say:\n1. what\n2. why\n\n"
		"You have 1 minute to prepare. You can make notes if you wish."
	)


class TestStart:
	async def test_requires_topic_or_bank(self, controller):
		with pytest.raises(TopicRequiredError):
			await controller.start()
		assert controller.state is ExamState.NOT_STARTED
		assert controller.messages == []

	async def test_greeting_is_shown_and_spoken(self, controller, speech):
		controller.select_topic("HOMETOWN")
		await controller.start()
		assert controller.state is ExamState.PHASE1
		assert controller.phase == 1
		assert [m.text for m in controller.messages] == [GREETING]
		assert speech.pending.text == GREETING
		assert controller.questions_asked == 0

	async def test_cannot_start_twice(self, controller):
		controller.select_topic("FOOD")
		await controller.start()
		with pytest.raises(InvalidTransitionError):
			await controller.start()

	async def test_answer_before_start(self, controller):
		with pytest.raises(InvalidTransitionError):
			await controller.answer("hello")

	async def test_topic_locked_once_started(self, controller):
		controller.select_topic("FOOD")
		await controller.start()
		with pytest.raises(InvalidTransitionError):
			controller.select_topic("TRAVEL")
		with pytest.raises(InvalidTransitionError):
			controller.select_bank(make_bank(["Q1"], ["P1"]))

	def test_unknown_topic(self, controller):
		with pytest.raises(UnknownTopicError):
			controller.select_topic("ASTRONOMY")


class TestTurns:
	@pytest.mark.parametrize("transcript", ["", "   ", "\n\t "])
	async def test_empty_transcript_changes_nothing(self, controller, transcript):
		controller.select_topic("HOMETOWN")
		await controller.start()
		with pytest.raises(EmptyTranscriptError):
			await controller.answer(transcript)
		assert len(controller.messages) == 1
		assert controller.questions_asked == 0
		assert controller.state is ExamState.PHASE1

	async def test_phase1_asks_four_questions_then_cue_card(self, controller):
		controller.select_topic("HOMETOWN")
		await controller.start()
		await answer_times(controller, 4)
		assert controller.state is ExamState.PHASE1
		assert controller.questions_asked == 4
		asked = examiner_texts(controller)[1:]
		assert len(set(asked)) == 4
		assert set(asked) <= set(question_banks.get_questions("HOMETOWN", "part1"))

		await controller.answer("That's all about my home.")
		assert controller.state is ExamState.PHASE2_PREP
		assert controller.phase == 2
		assert controller.questions_asked == 5
		last = controller.messages[-1].text
		assert last.startswith(PART2_INTRO)
		assert "Describe a place in your hometown that you like to visit\n\nYou should say:\n1. " in last
		assert controller.prep_ends_at is not None

	async def test_hometown_end_to_end(self, controller, examiner, speech):
		controller.select_topic("HOMETOWN")
		await controller.start()
		await answer_times(controller, 5, "phase one")
		assert controller.state is ExamState.PHASE2_PREP

		await controller.answer("The place I like most is the old harbour near my parents' house.")
		assert controller.state is ExamState.PHASE3
		assert controller.messages[-1].text == PART3_INTRO
		assert controller.prep_ends_at is None
		assert controller.questions_asked == 6

		await answer_times(controller, 4, "phase three")
		assert controller.questions_asked == 10
		part3 = examiner_texts(controller)[-4:]
		assert len(set(part3)) == 4
		assert set(part3) <= set(question_banks.get_questions("HOMETOWN", "part3"))

		await controller.answer("I think both have advantages.")
		assert controller.state is ExamState.FINISHED
		assert controller.messages[-1].text == CLOSING
		assert speech.pending.text == CLOSING
		assert controller.feedback == examiner.session_feedback.return_value

		for i, message in enumerate(controller.messages):
			assert message.role == ("examiner" if i % 2 == 0 else "student")

		students = [m.text for m in controller.messages if m.role == "student"]
		assert len(students) == 11
		examiner.session_feedback.assert_awaited_once_with(
			"\n\n".join(students), "Complete IELTS Speaking Test", 6.0, 2
		)
		examiner.follow_up_question.assert_not_awaited()
		examiner.cue_card.assert_not_awaited()

	async def test_part3_intro_takes_one_quota_slot(self, controller):
		part3 = [f"Part three question {i}?" for i in range(6)]
		controller.select_bank(make_bank(["Q1", "Q2", "Q3", "Q4"], part3))
		await controller.start()
		await answer_times(controller, 5)
		await controller.answer("long turn")
		assert controller.questions_asked == 6
		assert PART3_INTRO not in controller.asked

		await answer_times(controller, 5, "discussion")
		assert controller.state is ExamState.FINISHED
		asked_in_part3 = [text for text in examiner_texts(controller) if text in part3]
		assert len(asked_in_part3) == 4

	async def test_bank_exhaustion_advances_early(self, controller, examiner):
		controller.select_bank(make_bank(["Q1", "Q2"], ["P1"]))
		await controller.start()
		await answer_times(controller, 2)
		assert examiner_texts(controller)[-1] == "Q2"
		await controller.answer("done")
		assert controller.state is ExamState.PHASE2_PREP
		assert controller.questions_asked == 3

		await controller.answer("long turn")
		await controller.answer("ok")
		assert examiner_texts(controller)[-1] == "P1"
		await controller.answer("last")
		assert controller.state is ExamState.FINISHED
		examiner.follow_up_question.assert_not_awaited()

	async def test_question_never_repeated_across_parts(self, controller):
		controller.select_bank(make_bank(["Same question?"], ["Same question?", "Other question?"]))
		await controller.start()
		await answer_times(controller, 2)
		await controller.answer("long turn")
		await controller.answer("ready")
		assert examiner_texts(controller)[-1] == "Other question?"
		assert examiner_texts(controller).count("Same question?") == 1

	async def test_empty_parts_fall_back_to_generated_questions(self, controller, examiner):
		controller.select_bank(make_bank([], [], cue=False, name="Empty"))
		await controller.start()
		await controller.answer("My name is Ana")
		examiner.follow_up_question.assert_awaited_with("Daily Life and Personal Information", "My name is Ana", "easy", 1)
		assert controller.messages[-1].text == examiner.follow_up_question.return_value
		assert controller.questions_asked == 1

		await answer_times(controller, 4)
		assert controller.state is ExamState.PHASE2_PREP
		examiner.cue_card.assert_awaited_once_with("Empty")
		assert "Describe a memorable journey" in controller.messages[-1].text

		await controller.answer("long turn")
		await controller.answer("Cities are getting bigger")
		examiner.follow_up_question.assert_awaited_with("Abstract Discussion", "Cities are getting bigger", "hard", 3)

	async def test_imported_json_without_cue_card_uses_generated_card(self, controller, examiner):
		bank = parse_question_bank(json.dumps({
			"name": "Week 1",
			"part1Questions": ["Do you like music?", "Do you play an instrument?", "Who is your favourite singer?", "Do you sing?"],
			"part3Questions": ["Why is music important?"],
		}))
		controller.select_bank(bank)
		await controller.start()
		await answer_times(controller, 5)
		assert controller.state is ExamState.PHASE2_PREP
		examiner.cue_card.assert_awaited_once_with("Week 1")
		assert "Describe a memorable journey\n\nYou should say:\n1. Where you went" in controller.messages[-1].text


class TestFailures:
	async def test_question_generation_failure_does_not_advance(self, controller, examiner):
		examiner.follow_up_question.side_effect = ProviderHTTPError("Perplexity", 500, "down")
		controller.select_bank(make_bank([], []))
		await controller.start()
		await controller.answer("I'm Ana")
		assert controller.messages[-1].text == REPEAT_REQUEST
		assert controller.questions_asked == 0
		assert controller.state is ExamState.PHASE1

		examiner.follow_up_question.side_effect = None
		await controller.answer("I'm Ana")
		assert controller.messages[-1].text == examiner.follow_up_question.return_value
		assert controller.questions_asked == 1

	async def test_cue_card_failure_stays_in_phase1(self, controller, examiner):
		examiner.cue_card.side_effect = RuntimeError("timeout")
		controller.select_bank(make_bank(["Q1"], ["P1"], cue=False))
		await controller.start()
		await answer_times(controller, 2)
		assert controller.state is ExamState.PHASE1
		assert controller.messages[-1].text == REPEAT_REQUEST

		examiner.cue_card.side_effect = None
		await controller.answer("again")
		assert controller.state is ExamState.PHASE2_PREP
		assert controller.questions_asked == 2

	async def test_feedback_failure_can_be_retried(self, controller, examiner):
		examiner.session_feedback.side_effect = ProviderHTTPError("Perplexity", 503, "busy")
		controller.select_bank(make_bank(["Q1"], ["Q1"]))
		await controller.start()
		await answer_times(controller, 4)
		assert controller.state is ExamState.FINISHED
		assert controller.feedback is None
		assert examiner_texts(controller)[-2:] == [CLOSING, REPEAT_REQUEST]

		examiner.session_feedback.side_effect = None
		assert await controller.request_feedback() == examiner.session_feedback.return_value
		await controller.request_feedback()
		assert examiner.session_feedback.await_count == 2

	async def test_feedback_only_after_finish(self, controller):
		controller.select_topic("FOOD")
		await controller.start()
		with pytest.raises(InvalidTransitionError):
			await controller.request_feedback()

	async def test_prep_expiry_outside_part2_is_rejected(self, controller):
		controller.select_topic("FOOD")
		await controller.start()
		with pytest.raises(InvalidTransitionError):
			await controller.dispatch(ExamEvent.PREP_EXPIRED)


class TestPreparationTimer:
	async def reach_part2(self, controller):
		controller.select_bank(make_bank(["Q1"], ["P1"]))
		await controller.start()
		await answer_times(controller, 2)
		assert controller.state is ExamState.PHASE2_PREP

	async def test_expiry_prompts_the_long_turn(self, examiner, speech):
		controller = ExamController(examiner, speech, prep_seconds=0.01, rng=random.Random(1))
		try:
			await self.reach_part2(controller)
			await asyncio.sleep(0.1)
			assert controller.state is ExamState.PHASE2_SPEAKING
			assert controller.messages[-1].text == PREP_OVER
			assert speech.pending.text == PREP_OVER
			await controller.answer("My long answer")
			assert controller.state is ExamState.PHASE3
		finally:
			controller.close()

	async def test_early_answer_cancels_timer(self, examiner, speech):
		controller = ExamController(examiner, speech, prep_seconds=0.05)
		try:
			await self.reach_part2(controller)
			task = controller._prep_task
			await controller.answer("I am ready now")
			await asyncio.sleep(0.1)
			assert task.cancelled()
			assert controller.state is ExamState.PHASE3
			assert PREP_OVER not in examiner_texts(controller)
		finally:
			controller.close()


class TestReset:
	async def test_reset_restores_initial_state(self, controller, speech):
		controller.select_topic("HOMETOWN")
		await controller.start()
		await answer_times(controller, 5)
		task = controller._prep_task
		assert speech.pending is not None

		await controller.reset()
		await asyncio.sleep(0.01)
		assert controller.state is ExamState.NOT_STARTED
		assert controller.messages == []
		assert controller.questions_asked == 0
		assert controller.asked == set()
		assert controller.feedback is None
		assert controller.current_question is None
		assert controller.prep_ends_at is None
		assert speech.pending is None
		assert task.cancelled()

		# the selected topic survives a reset
		await controller.start()
		assert controller.messages[-1].text == GREETING

	async def test_snapshot(self, controller):
		controller.select_topic("TRAVEL")
		await controller.start()
		snap = controller.snapshot()
		assert snap["state"] == "phase1"
		assert snap["topic"] == "TRAVEL"
		assert snap["source_label"] == "Travel & Places"
		assert snap["messages"][0]["role"] == "examiner"
