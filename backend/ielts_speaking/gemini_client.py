from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional
from .errors import ProviderConfigError, ProviderHTTPError, ResponseParseError
from .settings import settings

logger = logging.getLogger(__name__)

SETUP_INSTRUCTIONS = """
Gemini API setup:

1. Go to https://aistudio.google.com/apikey
2. Sign in with a Google account and click "Create API Key"
3. Add GEMINI_API_KEY=<your key> to the .env file next to the backend
4. Restart the server
""".strip()


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ProviderConfigError("GEMINI_API_KEY is not configured", remediation=SETUP_INSTRUCTIONS)
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=timeout or settings.llm_timeout_seconds, transport=transport)

	async def generate(self, prompt: str, *, temperature: Optional[float] = None) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if temperature is not None:
			payload["generationConfig"] = {"temperature": temperature}
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
		except httpx.RequestError as net_err:
			logger.warning("Gemini request failed: %s", net_err)
			raise ProviderHTTPError("Gemini", None, str(net_err)) from net_err
		if r.status_code >= 400:
			message = _error_message(r)
			if r.status_code in (400, 401, 403) and "API key" in message:
				raise ProviderConfigError(f"Invalid Gemini API key: {message}", remediation=SETUP_INSTRUCTIONS)
			logger.warning("Gemini returned %s: %s", r.status_code, message)
			raise ProviderHTTPError("Gemini", r.status_code, message)
		try:
			data = r.json()
			parts = data["candidates"][0]["content"]["parts"]
			return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
		except (ValueError, KeyError, IndexError, TypeError) as err:
			raise ResponseParseError(f"Unexpected Gemini response: {r.text[:500]}") from err

	async def aclose(self) -> None:
		await self._client.aclose()


def _error_message(r: httpx.Response) -> str:
	try:
		body = r.json()
		return str(body.get("error", {}).get("message") or r.reason_phrase)
	except Exception:
		return r.reason_phrase or r.text[:200]
