from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError as PydanticValidationError

from .errors import ExternalServiceError, NoContentError, ValidationError
from .schemas import TranscriptSegment
from .settings import Settings, settings as default_settings
from .transcript import ProgressCallback, TranscriptNormalizer

logger = logging.getLogger(__name__)


def _error_message(data: Any) -> Optional[str]:
	if isinstance(data, dict):
		err = data.get("error")
		if isinstance(err, dict):
			return err.get("message")
		if isinstance(err, str):
			return err
	return None


class SearchApiClient:
	"""searchapi.io client: YouTube transcripts and Google site search."""

	def __init__(self, config: Optional[Settings] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.config = config or default_settings
		self.api_key = self.config.searchapi_api_key
		self.base_url = self.config.searchapi_base_url
		self._client = httpx.AsyncClient(timeout=self.config.http_timeout_seconds, transport=transport)

	async def aclose(self) -> None:
		await self._client.aclose()

	async def __aenter__(self) -> "SearchApiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	def _require_key(self) -> str:
		if not self.api_key:
			raise ValidationError("SearchAPI key is not configured")
		return self.api_key

	async def _get(self, params: Dict[str, Any]) -> tuple[httpx.Response, Any]:
		try:
			r = await self._client.get(self.base_url, params=params)
		except httpx.RequestError as net_err:
			logger.error("SearchAPI request failed: %s", net_err)
			raise ExternalServiceError("Failed to reach the search service") from net_err
		try:
			data = r.json()
		except ValueError:
			data = None
		return r, data

	async def _transcript_request(self, video_id: str, transcript_type: str) -> List[TranscriptSegment]:
		params = {
			"engine": "youtube_transcripts",
			"video_id": video_id,
			"api_key": self._require_key(),
			"transcript_type": transcript_type,
			"lang": "en",
		}
		r, data = await self._get(params)
		if r.is_error:
			message = _error_message(data) or "Failed to fetch transcript"
			logger.error("SearchAPI transcript error (%s): %s", r.status_code, message)
			if "used all of the searches" in message:
				raise ExternalServiceError("Service temporarily unavailable. Please try again later.")
			raise ExternalServiceError(message)
		raw = (data or {}).get("transcripts") or []
		try:
			return [TranscriptSegment.model_validate(item) for item in raw]
		except PydanticValidationError as err:
			raise ExternalServiceError("Transcript service returned malformed segments") from err

	async def fetch_transcript_segments(self, video_id: str) -> List[TranscriptSegment]:
		"""Manual transcript if there is one, otherwise the auto-generated one."""
		if not video_id:
			raise ValidationError("Video ID is required")
		segments = await self._transcript_request(video_id, "manual")
		if segments:
			return segments
		logger.info("No manual transcript for %s, trying auto-generated", video_id)
		try:
			segments = await self._transcript_request(video_id, "auto")
		except ExternalServiceError as err:
			raise NoContentError("No transcript available for this video") from err
		if not segments:
			raise NoContentError("No transcript available for this video")
		return segments

	async def fetch_transcript(self, video_id: str, on_progress: Optional[ProgressCallback] = None) -> str:
		segments = await self.fetch_transcript_segments(video_id)
		normalizer = TranscriptNormalizer(segments)
		pacing = self.config.transcript_pacing_seconds
		for progress in normalizer:
			if on_progress is not None:
				on_progress(progress)
			if pacing > 0:
				await asyncio.sleep(pacing)
		return normalizer.result()

	async def search_website(self, url: str) -> str:
		api_key = self._require_key()
		parsed = urlparse(url or "")
		if not parsed.hostname:
			raise ValidationError("A valid website URL is required")
		path_words = " ".join(p for p in parsed.path.split("/") if p)
		query = f"site:{parsed.hostname} {path_words}"
		params = {
			"engine": "google",
			"q": query,
			"api_key": api_key,
			"num": "10",
			"filter": "1",
		}
		r, data = await self._get(params)
		if r.is_error:
			message = _error_message(data) or "Failed to search website content"
			logger.error("SearchAPI google error (%s): %s", r.status_code, message)
			if "API key" in message:
				raise ExternalServiceError("Invalid API key. Please check your configuration.")
			if "exceeded your current quota" in message:
				raise ExternalServiceError("API quota exceeded. Please try again later.")
			if "rate limit" in message:
				raise ExternalServiceError("Too many requests. Please try again in a few moments.")
			raise ExternalServiceError(message)
		results = (data or {}).get("organic_results") or []
		if not results:
			raise NoContentError("No content found for this URL")
		return _combine_results(results, parsed.hostname)


def _combine_results(results: List[Dict[str, Any]], hostname: str) -> str:
	main = results[0]
	text = f"Title: {main.get('title', '')}\n\n"
	text += f"Source: {main.get('source') or hostname}\n"
	if main.get("date"):
		text += f"Date: {main['date']}\n"
	text += f"\nContent:\n{main.get('snippet', '')}\n\n"
	if len(results) > 1:
		text += "Additional Context:\n\n"
		for index, result in enumerate(results[1:], start=1):
			snippet = result.get("snippet")
			if snippet and "Access denied" not in snippet:
				text += f"Source {index}: {result.get('title', '')}\n"
				text += f"{snippet}\n\n"
	return text.strip()
