from typing import List, Literal, Optional

from fastapi import APIRouter, File, Query, UploadFile
from pydantic import BaseModel

from .. import question_banks
from ..errors import UnknownTopicError
from ..importer import parse_question_bank, parse_question_bank_file
from ..schemas import CueCard, ImportedQuestionBank

router = APIRouter(prefix="/topics", tags=["topics"])


class TopicSummary(BaseModel):
	key: str
	label: str


class TopicDetail(TopicSummary):
	part1: List[str]
	part2: CueCard
	part3: List[str]


class ImportRequest(BaseModel):
	text: str
	name: Optional[str] = None


@router.get("", response_model=List[TopicSummary])
async def list_topics():
	return [TopicSummary(key=key, label=label) for key, label in question_banks.QUESTION_TOPICS.items()]


@router.get("/{key}", response_model=TopicDetail)
async def get_topic(key: str):
	if not question_banks.is_topic(key):
		raise UnknownTopicError(key)
	return TopicDetail(
		key=key,
		label=question_banks.QUESTION_TOPICS[key],
		part1=question_banks.get_questions(key, "part1"),
		part2=question_banks.get_cue_card(key),
		part3=question_banks.get_questions(key, "part3"),
	)


@router.get("/{key}/questions", response_model=List[str])
async def random_questions(
	key: str,
	part: Literal["part1", "part3"] = "part1",
	count: int = Query(default=4, ge=0, le=50),
):
	return question_banks.get_random_questions(key, part, count)


@router.post("/import", response_model=ImportedQuestionBank)
async def import_bank(req: ImportRequest):
	return parse_question_bank(req.text, req.name)


@router.post("/import/file", response_model=ImportedQuestionBank)
async def import_bank_file(file: UploadFile = File(...)):
	content = await file.read()
	return parse_question_bank_file(file.filename or "", content)
