from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional

from .errors import ExternalServiceError
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class GeminiClient:
	def __init__(
		self,
		config: Optional[Settings] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.config = config or default_settings
		self.api_key = self.config.gemini_api_key
		if not self.api_key:
			raise ExternalServiceError("GEMINI_API_KEY is not configured")
		self.model = model or self.config.gemini_model
		self.provider = self.config.gemini_provider
		if self.provider == "vertex":
			region = self.config.vertex_region
			project = self.config.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		timeout = self.config.http_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(self.config.openrouter_api_key)
		self._openrouter_api_key = self.config.openrouter_api_key
		self._openrouter_model = self.config.openrouter_model
		self._openrouter_base_url = self.config.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": self.config.openrouter_referer,
			"X-Title": self.config.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def generate(
		self,
		prompt: str,
		*,
		system: Optional[str] = None,
		json_mode: bool = False,
		temperature: Optional[float] = None,
	) -> str:
		"""Send one prompt and return the model's text reply."""
		temp = self.config.gemini_temperature if temperature is None else temperature
		generation_config: Dict[str, Any] = {"temperature": temp}
		if json_mode:
			generation_config["responseMimeType"] = "application/json"
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"generationConfig": generation_config,
		}
		if system:
			payload["systemInstruction"] = {"parts": [{"text": system}]}
		messages: List[Dict[str, str]] = []
		if system:
			messages.append({"role": "system", "content": system})
		messages.append({"role": "user", "content": prompt})
		return await self._post_payload(payload, fallback_messages=messages, temperature=temp, json_mode=json_mode)

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		fallback_messages: List[Dict[str, str]],
		temperature: float,
		json_mode: bool,
	) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			last_error = http_err
		except httpx.RequestError as net_err:
			last_error = net_err
		if last_error is None:
			try:
				data = r.json()
				return data["candidates"][0]["content"]["parts"][0]["text"]
			except (ValueError, KeyError, IndexError, TypeError):
				last_error = RuntimeError(f"Unexpected Gemini response: {r.text[:200]}")
		logger.warning("Gemini call failed: %s", last_error)
		if not self._fallback_enabled:
			raise ExternalServiceError("Generation service request failed") from last_error
		return await self._fallback_generate(fallback_messages, last_error, temperature=temperature, json_mode=json_mode)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def _fallback_generate(
		self,
		messages: List[Dict[str, str]],
		primary_error: Optional[Exception],
		*,
		temperature: float,
		json_mode: bool,
	) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise ExternalServiceError("Generation service request failed") from primary_error
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": messages,
			"temperature": temperature,
		}
		if json_mode:
			payload["response_format"] = {"type": "json_object"}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			logger.error("OpenRouter fallback failed after Gemini error (%s): %s", primary_error, fallback_err)
			raise ExternalServiceError(
				"Generation service request failed; fallback via OpenRouter also failed"
			) from fallback_err
