"""Perplexity chat-completions client.

The API is OpenAI-compatible: a role-tagged ``messages`` array plus sampling
knobs, answered with ``choices[0].message.content``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import ProviderConfigError, ProviderHTTPError, ResponseParseError
from .settings import settings

logger = logging.getLogger(__name__)

# Available Perplexity models
SONAR = "sonar"
SONAR_PRO = "sonar-pro"

DEFAULT_CONFIG: Dict[str, Any] = {
	"max_tokens": 1500,
	"temperature": 0.7,
	"top_p": 0.9,
	"stream": False,
}

Message = Dict[str, str]


class PerplexityClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.perplexity_api_key
		if not self.api_key:
			raise ProviderConfigError(
				"Perplexity API key not configured",
				remediation="Add PERPLEXITY_API_KEY to the .env file and restart the server.",
			)
		self.base_url = base_url or settings.perplexity_base_url
		self.model = model or settings.perplexity_model
		self._headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		self._client = httpx.AsyncClient(timeout=timeout or settings.llm_timeout_seconds, transport=transport)

	def _payload(self, messages: List[Message], config: Dict[str, Any]) -> Dict[str, Any]:
		payload: Dict[str, Any] = {"model": self.model, **DEFAULT_CONFIG}
		payload.update({k: v for k, v in config.items() if v is not None})
		payload["messages"] = messages
		return payload

	async def chat(self, messages: List[Message], **config: Any) -> Dict[str, Any]:
		"""Send a chat-completion request and return the decoded response body."""
		payload = self._payload(messages, {**config, "stream": False})
		try:
			r = await self._client.post(self.base_url, headers=self._headers, json=payload)
		except httpx.RequestError as net_err:
			logger.warning("Perplexity request failed: %s", net_err)
			raise ProviderHTTPError("Perplexity", None, str(net_err)) from net_err
		if r.status_code >= 400:
			message = _error_message(r)
			logger.warning("Perplexity returned %s: %s", r.status_code, message)
			raise ProviderHTTPError("Perplexity", r.status_code, message)
		try:
			return r.json()
		except ValueError as err:
			raise ResponseParseError(f"Perplexity returned a non-JSON body: {r.text[:500]}") from err

	async def complete(self, messages: List[Message], **config: Any) -> str:
		"""Like :meth:`chat` but returns only the first choice's text."""
		data = await self.chat(messages, **config)
		try:
			return str(data["choices"][0]["message"]["content"])
		except (KeyError, IndexError, TypeError) as err:
			raise ResponseParseError(f"Unexpected Perplexity response: {data!r}"[:600]) from err

	async def aclose(self) -> None:
		await self._client.aclose()


def _error_message(r: httpx.Response) -> str:
	try:
		body = r.json()
		return str((body.get("error") or {}).get("message") or r.reason_phrase)
	except Exception:
		return r.reason_phrase or r.text[:200]
