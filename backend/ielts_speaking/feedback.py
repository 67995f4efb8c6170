"""
Speaking feedback generators.

Produces IELTS-specific feedback on speaking responses, scored against the four
public band descriptors (fluency and coherence, lexical resource, grammatical
range and accuracy, pronunciation). The band score itself is free text from
the provider; nothing here computes one.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from .gemini_client import GeminiClient
from .perplexity_client import SONAR, SONAR_PRO, PerplexityClient

SpeakingPart = Literal[1, 2, 3]

EXAMINER_SYSTEM_PROMPT = """You are an expert IELTS speaking examiner with 10+ years of experience. Provide detailed, constructive feedback based on the four IELTS speaking assessment criteria:
1. Fluency and Coherence
2. Lexical Resource (Vocabulary)
3. Grammatical Range and Accuracy
4. Pronunciation

Be specific, encouraging, and actionable in your feedback."""


def next_band(current_band: float) -> float:
	return min(current_band + 1, 9)


def build_feedback_request(transcript: str, question: str, current_band: float, part: SpeakingPart) -> str:
	return f"""IELTS Speaking Part {part}
Question: "{question}"
Student Response: "{transcript}"
Current Estimated Band Score: {current_band}

Please provide comprehensive feedback in the following format:

**STRENGTHS:**
- List 3-4 specific strengths in the response

**AREAS FOR IMPROVEMENT:**

*Fluency & Coherence:*
- Specific observations and suggestions

*Lexical Resource:*
- Vocabulary usage analysis and recommendations

*Grammatical Range & Accuracy:*
- Grammar observations and corrections needed

*Pronunciation:*
- Pronunciation patterns and improvement areas

**ACTIONABLE TIPS:**
1. First specific action to improve
2. Second specific action to improve
3. Third specific action to improve

**IMPROVED EXAMPLE RESPONSE:**
Provide a band {next_band(current_band):g} version of the same response, showing exactly how it could be improved.

**BAND SCORE BREAKDOWN:**
- Fluency & Coherence: X.X/9
- Lexical Resource: X.X/9
- Grammatical Range & Accuracy: X.X/9
- Pronunciation: X.X/9 (estimated based on transcript patterns)"""


async def generate_speaking_feedback(
	client: PerplexityClient,
	transcript: str,
	question: str,
	current_band: float,
	part: SpeakingPart = 2,
) -> str:
	messages = [
		{"role": "system", "content": EXAMINER_SYSTEM_PROMPT},
		{"role": "user", "content": build_feedback_request(transcript, question, current_band, part)},
	]
	return await client.complete(messages, model=SONAR_PRO, max_tokens=2000, temperature=0.6)


async def generate_speaking_feedback_with_gemini(
	client: GeminiClient,
	transcript: str,
	question: str,
	current_band: float,
	part: SpeakingPart = 2,
) -> str:
	prompt = f"""{EXAMINER_SYSTEM_PROMPT}

{build_feedback_request(transcript, question, current_band, part)}

Use the IELTS band descriptors accurately."""
	return await client.generate(prompt)


async def generate_quick_feedback(client: PerplexityClient, transcript: str, question: str) -> str:
	messages = [
		{"role": "system", "content": "You are an IELTS speaking coach. Provide brief, encouraging feedback."},
		{
			"role": "user",
			"content": (
				f'Question: "{question}"\n'
				f'Response: "{transcript}"\n\n'
				"Provide brief feedback (3-4 sentences) highlighting:\n"
				"1. One thing done well\n"
				"2. One area to improve\n"
				"3. One quick tip for next time"
			),
		},
	]
	return await client.complete(messages, model=SONAR, max_tokens=300, temperature=0.7)


async def generate_grammar_corrections(client: PerplexityClient, transcript: str) -> str:
	messages = [
		{"role": "system", "content": "You are an expert English grammar teacher specializing in IELTS preparation."},
		{
			"role": "user",
			"content": (
				"Analyze this IELTS speaking response for grammatical errors:\n\n"
				f'"{transcript}"\n\n'
				"For each error found:\n"
				"1. Quote the incorrect phrase\n"
				"2. Provide the correction\n"
				"3. Explain why (briefly)\n"
				"4. Rate the severity (minor/moderate/major)\n\n"
				"If there are no errors, acknowledge the correct usage."
			),
		},
	]
	return await client.complete(messages, model=SONAR_PRO, max_tokens=1000)


async def generate_vocabulary_enhancements(
	client: PerplexityClient,
	transcript: str,
	topic: str,
	target_band: float,
) -> str:
	messages = [
		{
			"role": "system",
			"content": (
				"You are a vocabulary expert for IELTS speaking. Help students use more sophisticated, "
				f"topic-specific vocabulary suitable for band {target_band:g}."
			),
		},
		{
			"role": "user",
			"content": (
				f"Topic: {topic}\n"
				f'Current Response: "{transcript}"\n'
				f"Target Band: {target_band:g}\n\n"
				"Suggest vocabulary improvements:\n"
				"1. Identify basic words that could be upgraded\n"
				f"2. Suggest band {target_band:g} alternatives\n"
				"3. Provide example sentences using the new vocabulary\n"
				"4. List 5 additional topic-specific words/phrases they should learn\n\n"
				"Format each suggestion as:\n"
				"- Basic word -> Advanced alternative\n"
				'- Example: "..."\n'
				"- Why it's better: (brief explanation)"
			),
		},
	]
	return await client.complete(messages, model=SONAR_PRO, max_tokens=1500)


async def generate_pronunciation_tips(
	client: PerplexityClient,
	transcript: str,
	detected_issues: Optional[List[str]] = None,
) -> str:
	issues = f"\n\nDetected pronunciation challenges: {', '.join(detected_issues)}" if detected_issues else ""
	messages = [
		{"role": "system", "content": "You are a pronunciation specialist for IELTS speaking test preparation."},
		{
			"role": "user",
			"content": (
				"Based on this speaking response, provide pronunciation guidance:\n\n"
				f'"{transcript}"{issues}\n\n'
				"Provide:\n"
				"1. Identify 3-5 words that might be challenging to pronounce\n"
				"2. Give phonetic pronunciation for each\n"
				"3. Provide tips for correct pronunciation\n"
				"4. Suggest similar-sounding words to practice\n"
				"5. Recommend specific pronunciation exercises"
			),
		},
	]
	return await client.complete(messages, model=SONAR, max_tokens=1000)


async def compare_to_model_answer(
	client: PerplexityClient,
	student_response: str,
	model_answer: str,
	question: str,
) -> str:
	messages = [
		{"role": "system", "content": "You are an IELTS examiner comparing student responses to model answers."},
		{
			"role": "user",
			"content": (
				f'Question: "{question}"\n\n'
				f'Student Response: "{student_response}"\n\n'
				f'Model Answer (Band 9): "{model_answer}"\n\n'
				"Compare these responses and explain:\n"
				"1. Key differences in approach\n"
				"2. What the model answer does better\n"
				"3. What the student can learn from the model\n"
				"4. Specific techniques to adopt\n"
				"5. Estimated band score difference and why"
			),
		},
	]
	return await client.complete(messages, model=SONAR_PRO, max_tokens=1500)
