from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(32), primary_key=True, default=_new_id)
	# Stored lowercased and trimmed; certificates are looked up by it
	email = Column(String(256), unique=True, index=True, nullable=False)
	password_hash = Column(String(256), nullable=False)
	first_name = Column(String(128), nullable=False, default="")
	last_name = Column(String(128), nullable=False, default="")
	email_verified = Column(Boolean, default=False, nullable=False)
	last_login_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class CertificateRow(Base):
	__tablename__ = "certificates"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), index=True, nullable=False)
	name = Column(String(256), nullable=False)
	email = Column(String(256), index=True, nullable=False)
	title = Column(String(256), nullable=False)
	score = Column(Integer, nullable=False)
	issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	original_text = Column(Text, nullable=False)
	kiu_json = Column(Text, nullable=False)  # KIUResult snapshot
	source_json = Column(Text, nullable=True)


class LearningMaterialRow(Base):
	__tablename__ = "learning_materials"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), index=True, nullable=False)
	title = Column(String(256), nullable=False)
	text = Column(Text, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	kiu_json = Column(Text, nullable=False)
	source_json = Column(Text, nullable=False)
