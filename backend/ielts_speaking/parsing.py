from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from .errors import ResponseParseError


def extract_json_block(text: str) -> Dict[str, Any]:
	"""Extract a JSON object from LLM response text.

	Attempts to parse the entire text as JSON first, then a fenced ```json block,
	then the outermost ``{...}`` span.

	Raises:
		ResponseParseError: If no valid JSON object can be extracted
	"""
	try:
		data = json.loads(text)
		if isinstance(data, dict):
			return data
	except ValueError:
		pass
	code_block = re.search(r"```json\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			data = json.loads(code_block.group(1))
			if isinstance(data, dict):
				return data
		except ValueError:
			pass
	match = re.search(r"\{[\s\S]*\}", text)
	if match:
		try:
			data = json.loads(match.group(0))
			if isinstance(data, dict):
				return data
		except ValueError:
			pass
	raise ResponseParseError("Failed to parse JSON from model output")


def strip_quotes(text: str) -> str:
	"""Trim whitespace and one pair of surrounding quote characters."""
	return re.sub(r"^[\"']|[\"']$", "", (text or "").strip())


def parse_numbered_lines(text: str) -> List[str]:
	"""Split a numbered list ("1. ...") into its items, dropping blank lines."""
	items: List[str] = []
	for line in (text or "").split("\n"):
		if not line.strip():
			continue
		items.append(re.sub(r"^\d+\.\s*", "", line.strip()).strip())
	return items


def dedupe_transcript(text: str) -> str:
	"""Collapse repeated 1-3 word phrases and extra whitespace in a transcript.

	Recognition engines often repeat phrases where interim and final results
	overlap.
	"""
	s = re.sub(r"\s+", " ", text or "").strip()
	if not s:
		return s
	patterns = [
		(r"\b(\w+\s+\w+\s+\w+)(?:\s+\1\b)+", r"\1"),
		(r"\b(\w+\s+\w+)(?:\s+\1\b)+", r"\1"),
		(r"\b(\w+)(?:\s+\1\b)+", r"\1"),
	]
	for pat, rep in patterns:
		s = re.sub(pat, rep, s, flags=re.IGNORECASE)
	return re.sub(r"\s+", " ", s).strip()
