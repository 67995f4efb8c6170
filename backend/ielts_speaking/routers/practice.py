"""
Practice session endpoints.

The browser owns the microphone and the speech synthesis engine. It creates a
session with the capabilities it detected, records answers (either streaming
recognition results or raw PCM chunks / a finished clip for server-side
transcription), plays every pending examiner utterance and acknowledges it.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import question_banks
from ..db import get_db
from ..deps import get_registry, get_session
from ..errors import InvalidTransitionError, UnknownTopicError
from ..models import AuthUser
from ..recorder import CAPTURE_CONSTRAINTS
from ..schemas import ClientCapabilities, ImportedQuestionBank, RecognitionResult, Utterance
from ..sessions import PracticeSession, SessionRegistry
from .auth import ensure_practice_allowed, get_current_account, record_practice_session

router = APIRouter(prefix="/practice/sessions", tags=["practice"])


class CreateSessionRequest(BaseModel):
	capabilities: ClientCapabilities
	topic: Optional[str] = None
	bank: Optional[ImportedQuestionBank] = None


class TopicRequest(BaseModel):
	topic: str


class AnswerRequest(BaseModel):
	transcript: str


class RecognitionRequest(BaseModel):
	results: List[RecognitionResult]


class RecordingStartRequest(BaseModel):
	sample_rate: Optional[int] = None


class ClientErrorReport(BaseModel):
	kind: str
	message: Optional[str] = None


@router.post("", status_code=201)
async def create_session(
	req: CreateSessionRequest,
	registry: SessionRegistry = Depends(get_registry),
	account: AuthUser = Depends(get_current_account),
):
	if req.bank is None and req.topic is not None and not question_banks.is_topic(req.topic):
		raise UnknownTopicError(req.topic)
	session = registry.create(req.capabilities, user_id=account.id)
	if req.bank is not None:
		session.controller.select_bank(req.bank)
	elif req.topic is not None:
		session.controller.select_topic(req.topic)
	return session.snapshot()


@router.get("/{session_id}")
async def get_practice_session(session: PracticeSession = Depends(get_session)):
	return session.snapshot()


@router.put("/{session_id}/topic")
async def select_topic(req: TopicRequest, session: PracticeSession = Depends(get_session)):
	session.controller.select_topic(req.topic)
	return session.snapshot()


@router.put("/{session_id}/bank")
async def select_bank(bank: ImportedQuestionBank, session: PracticeSession = Depends(get_session)):
	session.controller.select_bank(bank)
	return session.snapshot()


@router.post("/{session_id}/start")
async def start_exam(
	session: PracticeSession = Depends(get_session),
	account: AuthUser = Depends(get_current_account),
	db: Session = Depends(get_db),
):
	ensure_practice_allowed(account)
	await session.start()
	record_practice_session(db, account)
	return session.snapshot()


@router.post("/{session_id}/answer")
async def submit_answer(req: AnswerRequest, session: PracticeSession = Depends(get_session)):
	await session.submit_answer(req.transcript)
	return session.snapshot()


@router.post("/{session_id}/recognition")
async def add_recognition(req: RecognitionRequest, session: PracticeSession = Depends(get_session)):
	interim = session.add_recognition(req.results)
	return {"interim": interim}


@router.post("/{session_id}/recording/start")
async def start_recording(req: RecordingStartRequest, session: PracticeSession = Depends(get_session)):
	await session.start_recording(req.sample_rate)
	return {"recording": True, "constraints": CAPTURE_CONSTRAINTS}


@router.post("/{session_id}/recording/chunk")
async def recording_chunk(request: Request, session: PracticeSession = Depends(get_session)):
	chunk = await request.body()
	return {"level": session.feed_audio(chunk)}


@router.post("/{session_id}/recording/stop")
async def stop_recording(session: PracticeSession = Depends(get_session)):
	transcript = await session.stop_recording()
	return {"transcript": transcript, **session.snapshot()}


@router.post("/{session_id}/audio")
async def upload_audio(file: UploadFile = File(...), session: PracticeSession = Depends(get_session)):
	data = await file.read()
	transcript = await session.transcribe_upload(data, file.content_type or "audio/wav")
	return {"transcript": transcript, **session.snapshot()}


@router.get("/{session_id}/speech", response_model=Optional[Utterance])
async def pending_speech(session: PracticeSession = Depends(get_session)):
	return session.speech.pending


@router.post("/{session_id}/speech/{utterance_id}/done")
async def speech_done(utterance_id: str, session: PracticeSession = Depends(get_session)):
	return {"completed": session.speech.complete(utterance_id)}


@router.post("/{session_id}/errors")
async def report_error(req: ClientErrorReport, session: PracticeSession = Depends(get_session)):
	raise session.report_client_error(req.kind, req.message)


@router.post("/{session_id}/feedback")
async def request_feedback(session: PracticeSession = Depends(get_session)):
	async with session.lock:
		feedback = await session.controller.request_feedback()
	return {"feedback": feedback, **session.snapshot()}


@router.get("/{session_id}/feedback/download")
async def download_feedback(session: PracticeSession = Depends(get_session)):
	feedback = session.controller.feedback
	if not feedback:
		raise InvalidTransitionError("Feedback is not available yet")
	filename = f"IELTS_Feedback_{date.today().isoformat()}.txt"
	return PlainTextResponse(feedback, headers={"Content-Disposition": f'attachment; filename="{filename}"'})


@router.post("/{session_id}/reset")
async def reset_session(session: PracticeSession = Depends(get_session)):
	await session.reset()
	return session.snapshot()


@router.delete("/{session_id}", status_code=204)
async def delete_session(
	session: PracticeSession = Depends(get_session),
	registry: SessionRegistry = Depends(get_registry),
):
	registry.remove(session.id, session.user_id)
	return Response(status_code=204)
