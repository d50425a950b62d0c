from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import AuthUser
from ..records import normalize_email, to_profile
from ..schemas import UserProfile
from .auth import User, get_current_user, hash_password, send_verification, verify_password

router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileUpdate(BaseModel):
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	email: Optional[str] = None


class PasswordChange(BaseModel):
	current_password: str
	new_password: str


def _load(db: Session, user: User) -> AuthUser:
	row = db.get(AuthUser, user.id)
	if row is None:
		raise HTTPException(status_code=404, detail="User not found")
	return row


@router.get("", response_model=UserProfile)
async def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return to_profile(_load(db, user))


@router.patch("", response_model=UserProfile)
async def update_profile(req: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = _load(db, user)
	if req.first_name is not None:
		if not req.first_name.strip():
			raise HTTPException(status_code=400, detail="first_name cannot be empty")
		row.first_name = req.first_name.strip()
	if req.last_name is not None:
		if not req.last_name.strip():
			raise HTTPException(status_code=400, detail="last_name cannot be empty")
		row.last_name = req.last_name.strip()
	email_changed = False
	if req.email is not None:
		email = normalize_email(req.email)
		if not email or "@" not in email:
			raise HTTPException(status_code=400, detail="email is not valid")
		if email != row.email:
			taken = db.query(AuthUser).filter(AuthUser.email == email).first()
			if taken:
				raise HTTPException(status_code=409, detail="Email already in use")
			row.email = email
			# New address must be verified again
			row.email_verified = False
			email_changed = True
	db.commit()
	db.refresh(row)
	if email_changed:
		send_verification(row)
	return to_profile(row)


@router.post("/password")
async def change_password(req: PasswordChange, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = _load(db, user)
	if not verify_password(req.current_password, row.password_hash):
		raise HTTPException(status_code=401, detail="Current password is incorrect")
	if len(req.new_password or "") < 6:
		raise HTTPException(status_code=400, detail="password must be at least 6 characters")
	row.password_hash = hash_password(req.new_password)
	db.commit()
	return {"ok": True}
