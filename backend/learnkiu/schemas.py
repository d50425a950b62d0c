from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	# Stored records and API payloads use camelCase keys
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KIULevel(str, Enum):
	MIDDLE_SCHOOL = "Middle School Level"
	HIGH_SCHOOL = "High School Level"
	UNDERGRADUATE = "Undergraduate Level"
	MASTERS = "Master's Level"
	PHD = "PhD Level"


class KIUResult(CamelModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

	material_complexity: int
	# Reserved; always 0 for now
	baseline_knowledge: int = 0
	graduated_score: float
	level: KIULevel


class LearningUnit(CamelModel):
	title: str
	summary: str
	level: KIULevel
	reading_time: int
	kiu: float
	cpd_points: int


class Question(CamelModel):
	question: str
	options: List[str] = Field(min_length=4, max_length=4)
	correct_answer: int = Field(ge=0, le=3)
	explanation: Optional[str] = None


class Assessment(CamelModel):
	questions: List[Question]
	original_text: str
	accuracy: str
	learning_unit: LearningUnit


class Source(CamelModel):
	type: Literal["text", "youtube", "website"] = "text"
	id: Optional[str] = None
	url: Optional[str] = None


class CertificateRecord(CamelModel):
	id: str
	user_id: str
	name: str
	email: str
	title: str
	score: int = Field(ge=0, le=100)
	date: datetime
	original_text: str
	kiu: KIUResult
	source: Optional[Source] = None


class LearningMaterial(CamelModel):
	id: str
	user_id: str
	text: str
	title: str
	date: datetime
	kiu: KIUResult
	source: Source


class UserProfile(CamelModel):
	id: str
	email: str
	first_name: str
	last_name: str
	email_verified: bool = False
	created_at: datetime
	last_login_at: Optional[datetime] = None


class TranscriptSegment(CamelModel):
	text: str
	start: float
	duration: float = 0.0


class TranscriptProgress(CamelModel):
	current_minute: int
	total_minutes: int
	text: str
