from unittest.mock import AsyncMock, Mock

import pytest

from ielts_speaking import examiner, feedback
from ielts_speaking.errors import ResponseParseError
from ielts_speaking.perplexity_client import SONAR, SONAR_PRO


def perplexity(*replies):
	client = Mock()
	client.complete = AsyncMock(side_effect=list(replies))
	return client


def gemini(*replies):
	client = Mock()
	client.generate = AsyncMock(side_effect=list(replies))
	return client


class TestExaminerGenerators:
	async def test_follow_up_question_strips_quotes(self):
		client = perplexity('"What kind of food do you cook?"')
		question = await examiner.generate_follow_up_question(client, "Food", "I like cooking", "easy", 1)
		assert question == "What kind of food do you cook?"
		messages = client.complete.await_args.args[0]
		assert messages[0]["role"] == "system"
		assert "Part 1" in messages[0]["content"]
		assert 'Student\'s Previous Response: "I like cooking"' in messages[1]["content"]
		assert client.complete.await_args.kwargs == {"model": SONAR, "max_tokens": 100, "temperature": 0.8}

	async def test_empty_follow_up_is_a_parse_error(self):
		with pytest.raises(ResponseParseError):
			await examiner.generate_follow_up_question(perplexity('""'), "Food", "yes")

	async def test_part1_questions(self):
		client = perplexity("1. Do you cook?\n2. What is your favourite dish?")
		assert await examiner.generate_part1_questions(client, 2, ["food"]) == ["Do you cook?", "What is your favourite dish?"]
		assert "Focus on these topics: food" in client.complete.await_args.args[0][1]["content"]

	async def test_part3_questions(self):
		client = perplexity("1. Why do people travel?\n2. How has tourism changed?")
		assert await examiner.generate_part3_questions(client, "Describe a journey", 2) == [
			"Why do people travel?",
			"How has tourism changed?",
		]
		assert "Describe a journey" in client.complete.await_args.args[0][1]["content"]

	async def test_part2_cue_card_from_json(self):
		client = perplexity(
			'Here it is: {"mainTopic": "Describe a festival", "description": "You should say:", '
			'"points": ["when", "where"], "finalPrompt": "You will have 1-2 minutes to speak."}'
		)
		card = await examiner.generate_part2_cue_card(client, "festivals")
		assert card.main_topic == "Describe a festival"
		assert card.points == ["when", "where"]

	async def test_part2_cue_card_bad_shape(self):
		with pytest.raises(ResponseParseError):
			await examiner.generate_part2_cue_card(perplexity('{"points": []}'))

	async def test_relevance_defaults_without_json(self):
		result = await examiner.evaluate_response_relevance(perplexity("I cannot tell."), "Q?", "A.")
		assert result.is_relevant is True
		assert result.reason == "Unable to evaluate"
		assert result.score == 5

	async def test_relevance_parses_json(self):
		result = await examiner.evaluate_response_relevance(
			perplexity('{"isRelevant": false, "reason": "talks about cars", "score": 2}'), "Q?", "A."
		)
		assert result.is_relevant is False
		assert result.score == 2

	async def test_examiner_response(self):
		client = perplexity("  Thank you, that's very interesting.  ")
		assert await examiner.generate_examiner_response(client, "good_answer") == "Thank you, that's very interesting."

	async def test_mock_test_builds_part3_on_cue_card(self):
		client = perplexity(
			"1. Q1\n2. Q2\n3. Q3\n4. Q4",
			'{"mainTopic": "Describe a park", "points": ["where"]}',
			"1. Why are parks important?\n2. Should cities build more parks?",
		)
		mock = await examiner.generate_mock_test(client)
		assert mock.part1 == ["Q1", "Q2", "Q3", "Q4"]
		assert mock.part2.main_topic == "Describe a park"
		assert mock.part3[0] == "Why are parks important?"
		assert '"Describe a park"' in client.complete.await_args_list[2].args[0][1]["content"]

	async def test_gemini_follow_up(self):
		client = gemini("'Why is that?'")
		assert await examiner.generate_follow_up_with_gemini(client, "Travel", "I went to Rome", "hard", 3) == "Why is that?"
		assert "Part 3" in client.generate.await_args.args[0]

	def test_parse_gemini_cue_card(self):
		text = "Topic: Describe a teacher\nDescription: Talk about a teacher.\nPoints:\n1. who\n2. what\n3. why"
		card = examiner.parse_gemini_cue_card(text)
		assert card.main_topic == "Describe a teacher"
		assert card.points == ["who", "what", "why"]

	def test_parse_gemini_cue_card_fallback(self):
		card = examiner.parse_gemini_cue_card("nothing useful")
		assert card.main_topic == "Describe a memorable experience"
		assert card.points == examiner.FALLBACK_CUE_POINTS


class TestFeedbackGenerators:
	async def test_speaking_feedback_prompt(self):
		client = perplexity("Great job")
		text = await feedback.generate_speaking_feedback(client, "I live in Leeds", "Complete IELTS Speaking Test", 6.0, 2)
		assert text == "Great job"
		messages = client.complete.await_args.args[0]
		assert messages[0]["content"] == feedback.EXAMINER_SYSTEM_PROMPT
		assert "IELTS Speaking Part 2" in messages[1]["content"]
		assert "Provide a band 7 version" in messages[1]["content"]
		assert client.complete.await_args.kwargs == {"model": SONAR_PRO, "max_tokens": 2000, "temperature": 0.6}

	async def test_speaking_feedback_with_gemini(self):
		client = gemini("Band 6")
		assert await feedback.generate_speaking_feedback_with_gemini(client, "text", "Q", 8.5) == "Band 6"
		assert "band 9 version" in client.generate.await_args.args[0]

	def test_next_band_is_capped(self):
		assert feedback.next_band(6.0) == 7.0
		assert feedback.next_band(8.5) == 9

	async def test_quick_feedback(self):
		client = perplexity("Nice.")
		assert await feedback.generate_quick_feedback(client, "answer", "question") == "Nice."
		assert client.complete.await_args.kwargs["max_tokens"] == 300

	async def test_grammar_corrections(self):
		client = perplexity("No errors")
		await feedback.generate_grammar_corrections(client, "He go to school")
		assert '"He go to school"' in client.complete.await_args.args[0][1]["content"]

	async def test_vocabulary_enhancements(self):
		client = perplexity("- good -> beneficial")
		await feedback.generate_vocabulary_enhancements(client, "It is good", "Health", 7.5)
		prompt = client.complete.await_args.args[0]
		assert "band 7.5" in prompt[0]["content"]
		assert "Topic: Health" in prompt[1]["content"]

	async def test_pronunciation_tips_lists_detected_issues(self):
		client = perplexity("tips")
		await feedback.generate_pronunciation_tips(client, "three thin things", ["th sounds"])
		assert "Detected pronunciation challenges: th sounds" in client.complete.await_args.args[0][1]["content"]

	async def test_compare_to_model_answer(self):
		client = perplexity("comparison")
		await feedback.compare_to_model_answer(client, "mine", "model", "Q?")
		content = client.complete.await_args.args[0][1]["content"]
		assert 'Model Answer (Band 9): "model"' in content
