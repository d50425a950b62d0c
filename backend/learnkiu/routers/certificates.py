from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import records
from ..certificate import build_summary, certificate_filename, compose, derive_title
from ..db import get_db
from ..grading import grade_answers
from ..schemas import Assessment, CertificateRecord, Source
from .auth import User, get_current_user

router = APIRouter(prefix="/certificates", tags=["certificates"])


class IssueRequest(BaseModel):
	assessment: Assessment
	answers: List[Optional[int]]
	source: Optional[Source] = None


class IssueResponse(BaseModel):
	certificate: CertificateRecord
	filename: str


def _title_for(assessment: Assessment) -> str:
	return derive_title(assessment.original_text) or assessment.learning_unit.title


@router.post("", response_model=IssueResponse, status_code=201)
async def issue_certificate(req: IssueRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	result = grade_answers([q.correct_answer for q in req.assessment.questions], req.answers)
	if not result.eligible:
		raise HTTPException(status_code=403, detail=f"A score of at least 80% is required; you scored {result.percentage}%")
	title = _title_for(req.assessment)
	record = records.save_certificate(
		db,
		user_id=user.id,
		name=user.full_name,
		email=user.email,
		title=title,
		score=result.percentage,
		original_text=req.assessment.original_text,
		source=req.source,
	)
	return IssueResponse(certificate=record, filename=certificate_filename(title))


@router.get("", response_model=List[CertificateRecord])
async def list_certificates(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return records.get_certificates(db, user.email)


@router.get("/{certificate_id}/pdf")
async def download_certificate(certificate_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	record = records.get_certificate(db, certificate_id, user.email)
	pdf, filename = compose(
		record.name,
		record.title,
		record.score,
		build_summary(record.kiu),
		record.kiu,
		issued_on=record.date.date(),
	)
	return Response(
		content=pdf,
		media_type="application/pdf",
		headers={"Content-Disposition": f'attachment; filename="{filename}"'},
	)
