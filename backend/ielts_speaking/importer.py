"""Custom question bank import.

Two formats are accepted:

* JSON with ``part1Questions`` and ``part3Questions`` arrays, an optional
  ``part2CueCard`` object (``title`` + ``prompts``) and an optional ``name``.
* Plain text split into sections by ``PART 1`` / ``PART 2`` / ``PART 3``
  header lines, with one question per line and optional ``-``, ``•`` or ``*``
  bullets. Inside Part 2 the line starting with "Describe" or "Talk about"
  is the cue card title and the other lines are its prompts.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import PurePath
from typing import List, Optional

from pydantic import ValidationError

from .errors import QuestionBankParseError
from .schemas import CueCard, ImportedQuestionBank

logger = logging.getLogger(__name__)

DEFAULT_BANK_NAME = "Custom Bank"
ALLOWED_EXTENSIONS = (".json", ".txt", ".csv")

_BULLET = re.compile(r"^[-•*]\s*")
_PROMPT_BULLET = re.compile(r"^(?:[-•*]|\d+[.)])\s*")
_SECTION = re.compile(r"part\s?([123])", re.IGNORECASE)


def parse_question_bank(text: str, name: Optional[str] = None) -> ImportedQuestionBank:
	if not (text or "").strip():
		raise QuestionBankParseError("Please paste some questions")
	try:
		data = json.loads(text)
	except ValueError:
		data = None
	else:
		return _from_json(data, name)
	bank = _from_text(text, name)
	if bank is None:
		raise QuestionBankParseError("Could not parse the question bank. Please check the format.")
	return bank


def parse_question_bank_file(filename: str, content: bytes) -> ImportedQuestionBank:
	path = PurePath(filename or "")
	if path.suffix.lower() not in ALLOWED_EXTENSIONS:
		raise QuestionBankParseError("Please upload a .json, .txt, or .csv file")
	try:
		text = content.decode("utf-8-sig")
	except UnicodeDecodeError as err:
		raise QuestionBankParseError("Failed to read file. Please check the format.") from err
	return parse_question_bank(text, path.stem or None)


def _from_json(data: object, name: Optional[str]) -> ImportedQuestionBank:
	if not isinstance(data, dict) or "part1Questions" not in data or "part3Questions" not in data:
		raise QuestionBankParseError("JSON question banks need part1Questions and part3Questions arrays")
	payload = dict(data)
	payload["name"] = data.get("name") or name or DEFAULT_BANK_NAME
	try:
		return ImportedQuestionBank.model_validate(payload)
	except ValidationError as err:
		raise QuestionBankParseError(f"Invalid question bank: {err.errors()[0]['msg']}") from err


def _from_text(text: str, name: Optional[str]) -> Optional[ImportedQuestionBank]:
	part1: List[str] = []
	part3: List[str] = []
	cue_title = ""
	cue_prompts: List[str] = []
	section = ""

	for line in text.split("\n"):
		trimmed = line.strip()
		if not trimmed:
			continue
		header = _SECTION.search(trimmed)
		if header:
			section = "part" + header.group(1)
			continue
		if trimmed.startswith("#"):
			continue
		if section == "part1":
			part1.append(_BULLET.sub("", trimmed))
		elif section == "part2":
			lowered = trimmed.lower()
			if lowered.startswith("describe") or lowered.startswith("talk about"):
				cue_title = trimmed
			else:
				cue_prompts.append(_PROMPT_BULLET.sub("", trimmed))
		elif section == "part3":
			part3.append(_BULLET.sub("", trimmed))

	if not part1 and not part3:
		return None
	logger.info("Imported text question bank: %d part 1, %d part 3 questions", len(part1), len(part3))
	return ImportedQuestionBank(
		name=name or DEFAULT_BANK_NAME,
		part1_questions=part1 or ["What is your name?"],
		part2_cue_card=CueCard(title=cue_title, prompts=cue_prompts) if cue_title else None,
		part3_questions=part3 or list(part1),
	)
