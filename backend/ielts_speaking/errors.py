"""Error taxonomy for the practice flow.

Each error carries the HTTP status it maps to; ``main.py`` registers a single
handler for :class:`PracticeError` that renders ``{"detail": ..., "code": ...}``.
"""

from __future__ import annotations

from typing import Optional


class PracticeError(Exception):
	status_code: int = 400
	code: str = "practice_error"

	def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
		super().__init__(message)
		self.message = message
		self.remediation = remediation

	def to_dict(self) -> dict:
		body = {"detail": self.message, "code": self.code}
		if self.remediation:
			body["remediation"] = self.remediation
		return body


class MicrophonePermissionError(PracticeError):
	status_code = 403
	code = "microphone_denied"


class EmptyTranscriptError(PracticeError):
	status_code = 422
	code = "empty_transcript"

	def __init__(self, message: str = "No speech was captured for this answer.") -> None:
		super().__init__(
			message,
			remediation="Speak clearly for at least 3-5 seconds, check that your microphone is working, then try again.",
		)


class TranscriptionError(PracticeError):
	status_code = 502
	code = "transcription_failed"


class ProviderConfigError(PracticeError):
	status_code = 503
	code = "provider_not_configured"


class ProviderHTTPError(PracticeError):
	status_code = 502
	code = "provider_error"

	def __init__(self, provider: str, status: Optional[int], message: str) -> None:
		label = f"{provider} API error ({status})" if status is not None else f"{provider} API request failed"
		super().__init__(f"{label}: {message}")
		self.provider = provider
		self.status = status


class ResponseParseError(PracticeError):
	status_code = 502
	code = "provider_parse_error"


class UnsupportedClientError(PracticeError):
	status_code = 400
	code = "unsupported_client"


class TopicRequiredError(PracticeError):
	status_code = 409
	code = "topic_required"

	def __init__(self) -> None:
		super().__init__("Select a topic or import a question bank before starting.")


class InvalidTransitionError(PracticeError):
	status_code = 409
	code = "invalid_transition"


class RecordingActiveError(PracticeError):
	status_code = 409
	code = "recording_active"


class QuestionBankParseError(PracticeError):
	status_code = 400
	code = "question_bank_invalid"


class PracticeLimitError(PracticeError):
	status_code = 402
	code = "practice_limit_reached"


class SessionNotFoundError(PracticeError):
	status_code = 404
	code = "session_not_found"

	def __init__(self) -> None:
		super().__init__("Practice session not found or expired")


class UnknownTopicError(PracticeError):
	status_code = 404
	code = "unknown_topic"

	def __init__(self, topic: str) -> None:
		super().__init__(f"Unknown topic: {topic}")
		self.topic = topic
