from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..assessment import AssessmentPipeline
from ..grading import grade_answers
from ..schemas import Assessment
from .auth import User, get_current_user
from .deps import get_pipeline

router = APIRouter(prefix="/assessment", tags=["assessment"])


class GenerateRequest(BaseModel):
	text: str


class GradeRequest(BaseModel):
	assessment: Assessment
	answers: List[Optional[int]]


class GradeResponse(BaseModel):
	correct: int
	total: int
	percentage: int
	eligible: bool


@router.post("/generate", response_model=Assessment)
async def generate(
	req: GenerateRequest,
	user: User = Depends(get_current_user),
	pipeline: AssessmentPipeline = Depends(get_pipeline),
):
	return await pipeline.generate_assessment(req.text or "")


@router.post("/grade", response_model=GradeResponse)
async def grade(req: GradeRequest, user: User = Depends(get_current_user)):
	result = grade_answers([q.correct_answer for q in req.assessment.questions], req.answers)
	return GradeResponse(correct=result.correct, total=result.total, percentage=result.percentage, eligible=result.eligible)
