from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..schemas import CamelModel
from ..searchapi_client import SearchApiClient
from ..transcript import extract_video_id
from .auth import User, get_current_user
from .deps import get_search_client

router = APIRouter(prefix="/transcript", tags=["transcript"])


class UrlRequest(BaseModel):
	url: str


class YoutubeTranscriptResponse(CamelModel):
	video_id: str
	text: str
	total_minutes: int


class VideoIdResponse(CamelModel):
	video_id: Optional[str]


@router.get("/video-id", response_model=VideoIdResponse)
async def video_id(value: str = ""):
	return VideoIdResponse(video_id=extract_video_id(value))


@router.post("/youtube", response_model=YoutubeTranscriptResponse)
async def youtube_transcript(
	req: UrlRequest,
	user: User = Depends(get_current_user),
	client: SearchApiClient = Depends(get_search_client),
):
	vid = extract_video_id(req.url)
	if not vid:
		raise HTTPException(status_code=400, detail="Invalid YouTube URL or video ID")
	minutes = 0

	def on_progress(progress) -> None:
		nonlocal minutes
		minutes = progress.total_minutes

	text = await client.fetch_transcript(vid, on_progress=on_progress)
	return YoutubeTranscriptResponse(video_id=vid, text=text, total_minutes=minutes)


@router.post("/website")
async def website_text(
	req: UrlRequest,
	user: User = Depends(get_current_user),
	client: SearchApiClient = Depends(get_search_client),
):
	return {"text": await client.search_website(req.url)}
