"""
AI Examiner
===========

Prompt builders and generators that simulate a realistic IELTS speaking
examiner. Perplexity (chat completions) is the primary provider; the
``*_with_gemini`` variants cover the same ground through Gemini.

Every generator is a stateless request/response call: it builds a role-tagged
message list, calls the provider client it is given, and parses the returned
text either as a plain string or by locating an embedded JSON object.
"""

from __future__ import annotations

import re
from typing import Dict, List, Literal, Optional

from .errors import ResponseParseError
from .gemini_client import GeminiClient
from .parsing import extract_json_block, parse_numbered_lines, strip_quotes
from .perplexity_client import SONAR, PerplexityClient
from .schemas import Difficulty, GeneratedCueCard, MockTest, RelevanceResult

SpeakingPart = Literal[1, 2, 3]
ExaminerContext = Literal["good_answer", "short_answer", "off_topic", "encouragement"]

DIFFICULTY_GUIDANCE: Dict[str, str] = {
	"easy": "Keep questions straightforward and focused on personal experience or factual information.",
	"medium": "Ask questions that require elaboration, examples, and some abstract thinking.",
	"hard": "Ask questions that require analysis, comparison, abstract thinking, and well-developed arguments.",
}

PART_GUIDANCE: Dict[int, str] = {
	1: "Ask about personal information, daily life, hobbies, or familiar topics. Keep it simple and direct.",
	2: "This is a long turn topic. Generate questions related to describing experiences, places, or people.",
	3: "Ask analytical, abstract questions that require discussion of ideas, causes, effects, or societal implications.",
}

EXAMINER_RESPONSE_PROMPTS: Dict[str, str] = {
	"good_answer": "The candidate gave a well-developed, relevant answer. Give brief, natural acknowledgment (1-2 sentences).",
	"short_answer": "The candidate gave a very short answer. Encourage them to elaborate (1-2 sentences).",
	"off_topic": "The candidate went off-topic. Gently redirect them (1-2 sentences).",
	"encouragement": "The candidate seems nervous. Give brief encouragement (1 sentence).",
}

FALLBACK_CUE_POINTS: List[str] = [
	"When and where it happened",
	"Who was involved",
	"What made it memorable",
	"How you felt about it",
]


# ============================================================================
# PERPLEXITY GENERATORS
# ============================================================================

def build_follow_up_messages(
	topic: str,
	previous_response: str,
	difficulty: Difficulty = "medium",
	part: SpeakingPart = 2,
) -> List[Dict[str, str]]:
	return [
		{
			"role": "system",
			"content": (
				f"You are an experienced IELTS speaking examiner conducting Part {part} of the speaking test.\n"
				f"{PART_GUIDANCE[part]}\n"
				f"{DIFFICULTY_GUIDANCE[difficulty]}\n\n"
				"Generate natural, conversational questions that follow IELTS format and maintain a professional but friendly tone."
			),
		},
		{
			"role": "user",
			"content": (
				f"Topic: {topic}\n"
				f'Student\'s Previous Response: "{previous_response}"\n'
				f"Difficulty Level: {difficulty}\n\n"
				"Generate ONE natural follow-up question that:\n"
				"- Is relevant to what the student just said\n"
				"- Encourages them to elaborate or explore a new angle\n"
				f"- Matches the {difficulty} difficulty level\n"
				f"- Follows IELTS Part {part} question patterns\n\n"
				"Return ONLY the question, nothing else."
			),
		},
	]


async def generate_follow_up_question(
	client: PerplexityClient,
	topic: str,
	previous_response: str,
	difficulty: Difficulty = "medium",
	part: SpeakingPart = 2,
) -> str:
	"""Generate one follow-up question based on the student's last answer."""
	messages = build_follow_up_messages(topic, previous_response, difficulty, part)
	text = await client.complete(messages, model=SONAR, max_tokens=100, temperature=0.8)
	question = strip_quotes(text)
	if not question:
		raise ResponseParseError("Examiner returned an empty follow-up question")
	return question


async def generate_part1_questions(
	client: PerplexityClient,
	count: int = 4,
	topics: Optional[List[str]] = None,
) -> List[str]:
	topic_list = (
		f"Focus on these topics: {', '.join(topics)}"
		if topics
		else "Choose common IELTS Part 1 topics like work, studies, hometown, hobbies, daily routine, etc."
	)
	messages = [
		{"role": "system", "content": "You are an IELTS examiner creating Part 1 questions."},
		{
			"role": "user",
			"content": (
				f"Generate {count} IELTS Speaking Part 1 questions.\n"
				f"{topic_list}\n\n"
				"Requirements:\n"
				"- Simple, direct questions about familiar topics\n"
				"- Focus on personal experience and daily life\n"
				"- Natural, conversational tone\n"
				"- Mix of present, past, and future tenses\n\n"
				"Return ONLY the questions, one per line, numbered."
			),
		},
	]
	text = await client.complete(messages, model=SONAR, max_tokens=300)
	return parse_numbered_lines(text)


async def generate_part2_cue_card(client: PerplexityClient, topic: Optional[str] = None) -> GeneratedCueCard:
	topic_guidance = (
		f"Create a cue card about: {topic}"
		if topic
		else "Choose a common IELTS Part 2 topic (describe a person, place, object, event, or experience)"
	)
	messages = [
		{"role": "system", "content": "You are an IELTS examiner creating Part 2 cue cards."},
		{
			"role": "user",
			"content": (
				f"{topic_guidance}\n\n"
				"Format the cue card as JSON:\n"
				"{\n"
				'  "mainTopic": "Describe a...",\n'
				'  "description": "You should say:",\n'
				'  "points": [\n'
				'    "What/Where/When/Who...",\n'
				'    "How...",\n'
				'    "Why...",\n'
				'    "And explain..."\n'
				"  ],\n"
				'  "finalPrompt": "You will have 1-2 minutes to speak. You have 1 minute to prepare."\n'
				"}\n\n"
				"Make it realistic and interesting. Use proper IELTS Part 2 format."
			),
		},
	]
	text = await client.complete(messages, model=SONAR, max_tokens=400)
	data = extract_json_block(text)
	try:
		return GeneratedCueCard.model_validate(data)
	except ValueError as err:
		raise ResponseParseError("Failed to generate cue card in correct format") from err


async def generate_part3_questions(client: PerplexityClient, part2_topic: str, count: int = 5) -> List[str]:
	messages = [
		{"role": "system", "content": "You are an IELTS examiner creating Part 3 discussion questions."},
		{
			"role": "user",
			"content": (
				f'The Part 2 topic was: "{part2_topic}"\n\n'
				f"Generate {count} Part 3 discussion questions that:\n"
				"- Relate to the Part 2 topic but are more abstract\n"
				"- Require analysis, comparison, or discussion of broader issues\n"
				"- Cover different aspects: causes, effects, changes, predictions, comparisons\n"
				"- Gradually increase in difficulty\n"
				"- Are suitable for band 6-9 candidates\n\n"
				"Return ONLY the questions, one per line, numbered."
			),
		},
	]
	text = await client.complete(messages, model=SONAR, max_tokens=500)
	return parse_numbered_lines(text)


async def generate_examiner_response(client: PerplexityClient, context: ExaminerContext) -> str:
	messages = [
		{"role": "system", "content": "You are a supportive IELTS examiner. Respond naturally and professionally."},
		{
			"role": "user",
			"content": (
				f"{EXAMINER_RESPONSE_PROMPTS[context]}\n\n"
				"Respond as an examiner would during a real test. Be natural and concise.\n"
				"Return ONLY the response, nothing else."
			),
		},
	]
	text = await client.complete(messages, model=SONAR, max_tokens=50, temperature=0.9)
	return text.strip()


async def evaluate_response_relevance(client: PerplexityClient, question: str, response: str) -> RelevanceResult:
	messages = [
		{"role": "system", "content": "You are an IELTS examiner evaluating response relevance."},
		{
			"role": "user",
			"content": (
				f'Question: "{question}"\n'
				f'Response: "{response}"\n\n'
				"Evaluate if the response addresses the question. Return JSON:\n"
				"{\n"
				'  "isRelevant": true/false,\n'
				'  "reason": "Brief explanation",\n'
				'  "score": 0-10 (relevance score)\n'
				"}"
			),
		},
	]
	text = await client.complete(messages, model=SONAR, max_tokens=150)
	if not re.search(r"\{[\s\S]*\}", text):
		return RelevanceResult(is_relevant=True, reason="Unable to evaluate", score=5)
	data = extract_json_block(text)
	try:
		return RelevanceResult.model_validate(data)
	except ValueError as err:
		raise ResponseParseError("Relevance evaluation returned an unexpected shape") from err


async def generate_mock_test(client: PerplexityClient, topics: Optional[List[str]] = None) -> MockTest:
	"""Generate a complete mock test; Part 3 builds on the Part 2 cue card."""
	part1 = await generate_part1_questions(client, 4, topics)
	part2 = await generate_part2_cue_card(client, topics[0] if topics else None)
	part3 = await generate_part3_questions(client, part2.main_topic, 5)
	return MockTest(part1=part1, part2=part2, part3=part3)


# ============================================================================
# GEMINI GENERATORS
# ============================================================================

async def generate_follow_up_with_gemini(
	client: GeminiClient,
	topic: str,
	previous_response: str,
	difficulty: Difficulty = "medium",
	part: SpeakingPart = 2,
) -> str:
	prompt = f"""You are an experienced IELTS speaking examiner conducting Part {part} of the speaking test.

{PART_GUIDANCE[part]}
{DIFFICULTY_GUIDANCE[difficulty]}

Topic: {topic}
Student's Previous Response: "{previous_response}"
Difficulty Level: {difficulty}

Generate ONE natural follow-up question that:
- Is relevant to what the student just said
- Encourages them to elaborate or explore a new angle
- Matches the {difficulty} difficulty level
- Sounds natural and conversational
- Is appropriate for IELTS Part {part}

Respond with ONLY the question, nothing else."""
	text = await client.generate(prompt)
	question = strip_quotes(text)
	if not question:
		raise ResponseParseError("Gemini returned an empty follow-up question")
	return question


def parse_gemini_cue_card(text: str) -> GeneratedCueCard:
	"""Parse the "Topic: / Description: / Points:" layout Gemini is asked for."""
	topic_match = re.search(r"Topic:\s*(.+)", text)
	desc_match = re.search(r"Description:\s*(.+)", text)
	points_match = re.search(r"Points:\s*\n([\s\S]+)", text)
	points: List[str] = []
	if points_match:
		points = [
			re.sub(r"^\d+\.\s*", "", line.strip()).strip()
			for line in points_match.group(1).split("\n")
			if re.match(r"^\d+\.", line.strip())
		]
	return GeneratedCueCard(
		main_topic=topic_match.group(1).strip() if topic_match else "Describe a memorable experience",
		description=desc_match.group(1).strip() if desc_match else "Talk about a memorable experience you had.",
		points=points or list(FALLBACK_CUE_POINTS),
	)


async def generate_cue_card_with_gemini(client: GeminiClient) -> GeneratedCueCard:
	prompt = """Generate a realistic IELTS Speaking Part 2 cue card topic.

Format your response exactly like this:

Topic: [Main topic title]
Description: [Brief description of what to talk about]
Points:
1. [First bullet point]
2. [Second bullet point]
3. [Third bullet point]
4. [Fourth bullet point]

Example topics: Describe a memorable journey, Describe a person who influenced you, Describe a skill you learned, etc.

Generate a new, interesting cue card now:"""
	text = await client.generate(prompt)
	return parse_gemini_cue_card(text)
