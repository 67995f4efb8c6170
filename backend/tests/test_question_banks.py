import random

import pytest

from ielts_speaking import question_banks
from ielts_speaking.errors import UnknownTopicError


class TestQuestionBanks:
	def test_every_topic_has_a_bank(self):
		assert set(question_banks.QUESTION_TOPICS) == set(question_banks.QUESTION_BANKS)
		for key in question_banks.QUESTION_TOPICS:
			bank = question_banks.QUESTION_BANKS[key]
			assert bank["part1"]
			assert bank["part3"]
			assert bank["part2"]["title"]
			assert bank["part2"]["prompts"]

	@pytest.mark.parametrize("count", [1, 4, 8])
	def test_random_questions_are_distinct_members(self, count):
		pool = question_banks.get_questions("FOOD", "part1")
		picked = question_banks.get_random_questions("FOOD", "part1", count, random.Random(3))
		assert len(picked) == min(count, len(pool))
		assert len(set(picked)) == len(picked)
		assert set(picked) <= set(pool)

	def test_random_questions_capped_at_bank_size(self):
		pool = question_banks.get_questions("HOMETOWN", "part3")
		picked = question_banks.get_random_questions("HOMETOWN", "part3", 50)
		assert sorted(picked) == sorted(pool)

	def test_zero_or_negative_count_returns_empty(self):
		assert question_banks.get_random_questions("TRAVEL", "part1", 0) == []
		assert question_banks.get_random_questions("TRAVEL", "part1", -2) == []

	def test_get_questions_returns_a_copy(self):
		questions = question_banks.get_questions("HEALTH", "part1")
		questions.clear()
		assert question_banks.get_questions("HEALTH", "part1")

	def test_cue_card(self):
		card = question_banks.get_cue_card("HOMETOWN")
		assert card.title == "Describe a place in your hometown that you like to visit"
		assert len(card.prompts) >= 3

	def test_unknown_topic(self):
		assert not question_banks.is_topic("SPACE")
		assert not question_banks.is_topic(None)
		with pytest.raises(UnknownTopicError):
			question_banks.get_cue_card("SPACE")
		with pytest.raises(UnknownTopicError):
			question_banks.get_random_questions("SPACE", "part1", 3)
