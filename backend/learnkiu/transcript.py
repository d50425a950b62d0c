"""Turn raw YouTube transcript segments into continuous readable text."""

from __future__ import annotations
import math
import re
from typing import Callable, Dict, Iterable, Iterator, List, Optional
from urllib.parse import parse_qs, urlparse

from .errors import NoTranscriptContent
from .schemas import TranscriptProgress, TranscriptSegment

ProgressCallback = Callable[[TranscriptProgress], None]

_SPEAKER_TAG_RE = re.compile(r"\[[^\]]*\]:\s*")
_TIMESTAMP_RE = re.compile(r"\(\d{1,2}:\d{2}\)")
_ANNOTATION_RE = re.compile(r"\[.*?\]|\(.*?\)")
_GLYPH_RE = re.compile(r"[♪♫►]")
_FILLER_RE = re.compile(r"\b(?:um|uh|ah|er|mm|hmm)\b", re.IGNORECASE)
_NOISE_TAG_RE = re.compile(r"\[Music\]|\[Applause\]|\[Laughter\]|\[Background Noise\]", re.IGNORECASE)
_EMPTY_PARENS_RE = re.compile(r"\(\s*\)")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_ENDERS = (".", "!", "?")

_SPACE_AFTER_PUNCT_RE = re.compile(r"([.!?])\s*([A-Z])")
_REPEATED_PUNCT_RE = re.compile(r"([.!?])+")

_VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
_PATH_ID_RE = re.compile(r"/(shorts|embed|v)/([^/?]+)")


def clean_segment_text(text: str) -> str:
	cleaned = text.strip()
	cleaned = _SPEAKER_TAG_RE.sub("", cleaned)
	cleaned = _TIMESTAMP_RE.sub("", cleaned)
	cleaned = _ANNOTATION_RE.sub("", cleaned)
	cleaned = _GLYPH_RE.sub("", cleaned)
	cleaned = _FILLER_RE.sub("", cleaned)
	cleaned = _NOISE_TAG_RE.sub("", cleaned)
	cleaned = _EMPTY_PARENS_RE.sub("", cleaned)
	return _WHITESPACE_RE.sub(" ", cleaned).strip()


def finalize_transcript(text: str) -> str:
	"""Final punctuation/whitespace pass. Applying it twice changes nothing."""
	out = _SPACE_AFTER_PUNCT_RE.sub(r"\1 \2", text)
	out = _REPEATED_PUNCT_RE.sub(r"\1", out)
	out = _WHITESPACE_RE.sub(" ", out)
	return out.strip()


def total_minutes(segments: Iterable[TranscriptSegment]) -> int:
	end = 0.0
	for seg in segments:
		end = max(end, seg.start + seg.duration)
	return math.ceil(end / 60)


def group_by_minute(segments: Iterable[TranscriptSegment]) -> Dict[int, List[TranscriptSegment]]:
	buckets: Dict[int, List[TranscriptSegment]] = {}
	for seg in segments:
		buckets.setdefault(math.floor(seg.start / 60), []).append(seg)
	return buckets


class _Accumulator:
	def __init__(self) -> None:
		self.text = ""
		self.buffer = ""

	def add(self, fragment: str) -> None:
		self.buffer = f"{self.buffer} {fragment}" if self.buffer else fragment
		# Only flush whole sentences so a sentence split across segments stays intact
		if fragment.endswith(_SENTENCE_ENDERS):
			self.flush()

	def flush(self) -> None:
		if self.buffer:
			self.text = f"{self.text} {self.buffer}" if self.text else self.buffer
			self.buffer = ""


def _walk(segments: List[TranscriptSegment], acc: _Accumulator) -> Iterator[TranscriptProgress]:
	minutes = total_minutes(segments)
	buckets = group_by_minute(segments)
	for minute in range(minutes + 1):
		for seg in buckets.get(minute, []):
			fragment = clean_segment_text(seg.text)
			if fragment:
				acc.add(fragment)
		yield TranscriptProgress(current_minute=minute + 1, total_minutes=minutes, text=acc.text)
	acc.flush()


def iter_progress(segments: Iterable[TranscriptSegment]) -> Iterator[TranscriptProgress]:
	"""Lazily yield one progress snapshot per minute bucket, in minute order."""
	return _walk(list(segments), _Accumulator())


def _finish(acc: _Accumulator) -> str:
	transcript = finalize_transcript(acc.text)
	if not transcript:
		raise NoTranscriptContent()
	return transcript


def normalize_segments(segments: Iterable[TranscriptSegment], on_progress: Optional[ProgressCallback] = None) -> str:
	acc = _Accumulator()
	for progress in _walk(list(segments), acc):
		if on_progress is not None:
			on_progress(progress)
	return _finish(acc)


class TranscriptNormalizer:
	"""Incremental form of :func:`normalize_segments` for callers that pause between buckets."""

	def __init__(self, segments: Iterable[TranscriptSegment]) -> None:
		self._acc = _Accumulator()
		self._steps = _walk(list(segments), self._acc)

	def __iter__(self) -> Iterator[TranscriptProgress]:
		return self._steps

	def result(self) -> str:
		# Drain anything not consumed yet so the trailing buffer gets flushed
		for _ in self._steps:
			pass
		return _finish(self._acc)


def extract_video_id(value: Optional[str]) -> Optional[str]:
	if not value:
		return None
	value = value.strip()
	if _VIDEO_ID_RE.match(value):
		return value
	try:
		parsed = urlparse(value)
	except ValueError:
		return None
	host = (parsed.hostname or "").lower()
	if "youtube.com" in host:
		if parsed.path == "/watch":
			ids = parse_qs(parsed.query).get("v")
			return ids[0] if ids else None
		match = _PATH_ID_RE.search(parsed.path)
		if match:
			return match.group(2)
	elif host == "youtu.be":
		video_id = parsed.path.lstrip("/")
		return video_id or None
	return None
