from __future__ import annotations
from typing import AsyncIterator

from fastapi import Depends

from ..assessment import AssessmentPipeline, TextGenerator
from ..gemini_client import GeminiClient
from ..searchapi_client import SearchApiClient
from ..settings import Settings, settings



def get_settings() -> Settings:
	return settings


async def get_generator(config: Settings = Depends(get_settings)) -> AsyncIterator[TextGenerator]:
	client = GeminiClient(config)
	try:
		yield client
	finally:
		await client.aclose()


async def get_search_client(config: Settings = Depends(get_settings)) -> AsyncIterator[SearchApiClient]:
	client = SearchApiClient(config)
	try:
		yield client
	finally:
		await client.aclose()


def get_pipeline(generator: TextGenerator = Depends(get_generator)) -> AssessmentPipeline:
	return AssessmentPipeline(generator)
