from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import kiu as kiu_scorer
from .errors import ExternalServiceError, NoContentError, ValidationError
from .grading import is_certificate_eligible
from .models import AuthUser, CertificateRow, LearningMaterialRow
from .schemas import CertificateRecord, KIUResult, LearningMaterial, Source, UserProfile

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
	return (email or "").strip().lower()


def _source_json(source: Optional[Source]) -> Optional[str]:
	return source.model_dump_json(by_alias=True, exclude_none=True) if source else None


def _certificate_from_row(row: CertificateRow) -> CertificateRecord:
	return CertificateRecord(
		id=row.id,
		user_id=row.user_id,
		name=row.name,
		email=row.email,
		title=row.title,
		score=row.score,
		date=row.issued_at,
		original_text=row.original_text,
		kiu=KIUResult.model_validate(json.loads(row.kiu_json)),
		source=Source.model_validate(json.loads(row.source_json)) if row.source_json else None,
	)


def _material_from_row(row: LearningMaterialRow) -> LearningMaterial:
	return LearningMaterial(
		id=row.id,
		user_id=row.user_id,
		text=row.text,
		title=row.title,
		date=row.created_at,
		kiu=KIUResult.model_validate(json.loads(row.kiu_json)),
		source=Source.model_validate(json.loads(row.source_json)),
	)


def save_certificate(
	db: Session,
	*,
	user_id: str,
	name: str,
	email: str,
	title: str,
	score: int,
	original_text: str,
	source: Optional[Source] = None,
	issued_at: Optional[datetime] = None,
) -> CertificateRecord:
	if not is_certificate_eligible(score):
		raise ValidationError("Certificates are only issued for scores of 80% or higher")
	kiu = kiu_scorer.score(original_text)
	row = CertificateRow(
		user_id=user_id,
		name=name,
		email=normalize_email(email),
		title=title,
		score=score,
		issued_at=issued_at or datetime.utcnow(),
		original_text=original_text,
		kiu_json=kiu.model_dump_json(by_alias=True),
		source_json=_source_json(source),
	)
	try:
		db.add(row)
		db.commit()
		db.refresh(row)
	except SQLAlchemyError as err:
		db.rollback()
		logger.error("Error saving certificate: %s", err)
		raise ExternalServiceError("Failed to save certificate") from err
	return _certificate_from_row(row)


def get_certificates(db: Session, email: str) -> List[CertificateRecord]:
	key = normalize_email(email)
	if not key:
		raise ValidationError("Email is required")
	try:
		rows = (
			db.query(CertificateRow)
			.filter(CertificateRow.email == key)
			.order_by(CertificateRow.issued_at.desc())
			.all()
		)
	except SQLAlchemyError as err:
		logger.error("Error fetching certificates: %s", err)
		raise ExternalServiceError("Failed to fetch certificates") from err
	return [_certificate_from_row(r) for r in rows]


def get_certificate(db: Session, certificate_id: str, email: str) -> CertificateRecord:
	row = db.get(CertificateRow, certificate_id)
	if row is None or row.email != normalize_email(email):
		raise NoContentError("Certificate not found")
	return _certificate_from_row(row)


def save_learning_material(
	db: Session,
	*,
	user_id: str,
	text: str,
	title: str,
	source: Optional[Source] = None,
) -> LearningMaterial:
	kiu = kiu_scorer.score(text)
	row = LearningMaterialRow(
		user_id=user_id,
		title=title,
		text=text,
		kiu_json=kiu.model_dump_json(by_alias=True),
		source_json=_source_json(source or Source(type="text")),
	)
	try:
		db.add(row)
		db.commit()
		db.refresh(row)
	except SQLAlchemyError as err:
		db.rollback()
		logger.error("Error saving learning material: %s", err)
		raise ExternalServiceError("Failed to save learning material") from err
	return _material_from_row(row)


def get_learning_materials(db: Session, user_id: str) -> List[LearningMaterial]:
	try:
		rows = (
			db.query(LearningMaterialRow)
			.filter(LearningMaterialRow.user_id == user_id)
			.order_by(LearningMaterialRow.created_at.desc())
			.all()
		)
	except SQLAlchemyError as err:
		logger.error("Error fetching learning materials: %s", err)
		raise ExternalServiceError("Failed to fetch learning materials") from err
	return [_material_from_row(r) for r in rows]


def to_profile(user: AuthUser) -> UserProfile:
	return UserProfile(
		id=user.id,
		email=user.email,
		first_name=user.first_name,
		last_name=user.last_name,
		email_verified=bool(user.email_verified),
		created_at=user.created_at,
		last_login_at=user.last_login_at,
	)
