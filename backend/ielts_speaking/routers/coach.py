from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from .. import examiner, feedback
from ..deps import get_examiner, get_providers
from ..providers import ExaminerService, LLMProviders
from ..schemas import CueCard, Difficulty, MockTest, RelevanceResult
from .auth import User, get_current_user

router = APIRouter(prefix="/coach", tags=["coach"])


class QuickFeedbackRequest(BaseModel):
	transcript: str
	question: str


class TranscriptRequest(BaseModel):
	transcript: str


class VocabularyRequest(BaseModel):
	transcript: str
	topic: str
	target_band: float = Field(default=7.0, ge=1, le=9)


class PronunciationRequest(BaseModel):
	transcript: str
	detected_issues: Optional[List[str]] = None


class CompareRequest(BaseModel):
	student_response: str
	model_answer: str
	question: str


class RelevanceRequest(BaseModel):
	question: str
	response: str


class MockTestRequest(BaseModel):
	topics: Optional[List[str]] = None


class FollowUpRequest(BaseModel):
	topic: str
	previous_response: str
	difficulty: Difficulty = "medium"
	part: Literal[1, 2, 3] = 2


class CueCardRequest(BaseModel):
	topic: Optional[str] = None


class ExaminerResponseRequest(BaseModel):
	context: examiner.ExaminerContext


@router.post("/quick")
async def quick_feedback(req: QuickFeedbackRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	text = await feedback.generate_quick_feedback(providers.perplexity(), req.transcript, req.question)
	return {"text": text}


@router.post("/grammar")
async def grammar(req: TranscriptRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	text = await feedback.generate_grammar_corrections(providers.perplexity(), req.transcript)
	return {"text": text}


@router.post("/vocabulary")
async def vocabulary(req: VocabularyRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	text = await feedback.generate_vocabulary_enhancements(providers.perplexity(), req.transcript, req.topic, req.target_band)
	return {"text": text}


@router.post("/pronunciation")
async def pronunciation(req: PronunciationRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	text = await feedback.generate_pronunciation_tips(providers.perplexity(), req.transcript, req.detected_issues)
	return {"text": text}


@router.post("/compare")
async def compare(req: CompareRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	text = await feedback.compare_to_model_answer(providers.perplexity(), req.student_response, req.model_answer, req.question)
	return {"text": text}


@router.post("/relevance", response_model=RelevanceResult)
async def relevance(req: RelevanceRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	return await examiner.evaluate_response_relevance(providers.perplexity(), req.question, req.response)


@router.post("/mock-test", response_model=MockTest)
async def mock_test(req: MockTestRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	return await examiner.generate_mock_test(providers.perplexity(), req.topics)


@router.post("/follow-up")
async def follow_up(req: FollowUpRequest, service: ExaminerService = Depends(get_examiner), user: User = Depends(get_current_user)):
	question = await service.follow_up_question(req.topic, req.previous_response, req.difficulty, req.part)
	return {"question": question}


@router.post("/cue-card", response_model=CueCard)
async def cue_card(req: CueCardRequest, service: ExaminerService = Depends(get_examiner), user: User = Depends(get_current_user)):
	return await service.cue_card(req.topic)


@router.post("/examiner-response")
async def examiner_response(req: ExaminerResponseRequest, providers: LLMProviders = Depends(get_providers), user: User = Depends(get_current_user)):
	text = await examiner.generate_examiner_response(providers.perplexity(), req.context)
	return {"text": text}
