from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthUser, AuthSession
from ..records import normalize_email

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

VERIFY_PURPOSE = "verify_email"


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	id: str
	email: str
	first_name: str
	last_name: str
	email_verified: bool = False

	@property
	def full_name(self) -> str:
		return f"{self.first_name} {self.last_name}".strip()


def _user_from_row(row: AuthUser) -> User:
	return User(
		id=row.id,
		email=row.email,
		first_name=row.first_name,
		last_name=row.last_name,
		email_verified=bool(row.email_verified),
	)


def _bcrypt_safe(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)


def authenticate_user(db: Session, email: str, password: str) -> Optional[AuthUser]:
	row = db.query(AuthUser).filter(AuthUser.email == normalize_email(email)).first()
	if row and verify_password(password, row.password_hash):
		return row
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = getattr(settings, "access_token_expire_minutes", None)
		if isinstance(minutes, int) and minutes > 0:
			delta = timedelta(minutes=minutes)
		else:
			delta = timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta)
	to_encode.update({"exp": expire})
	encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
	return encoded_jwt


def create_verification_token(user: AuthUser) -> str:
	"""Signed token proving ownership of the user's current email address."""
	return create_access_token(
		{"sub": user.id, "email": user.email, "purpose": VERIFY_PURPOSE},
		timedelta(minutes=settings.verification_token_expire_minutes),
	)


def send_verification(user: AuthUser) -> None:
	token = create_verification_token(user)
	# No mail transport is configured; the token is handed over through the log
	logger.info("Email verification token for %s: %s", user.email, token)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Invalid email or password")
	# Create a new session id (jti) and persist server-side
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": user.id, "jti": session_id})
	try:
		db.add(AuthSession(session_id=session_id, user_id=user.id))
		user.last_login_at = datetime.utcnow()
		db.commit()
	except Exception:
		db.rollback()
		raise HTTPException(status_code=500, detail="Failed to sign in")
	return Token(access_token=access_token)


def _decode(token: str) -> dict:
	return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = _decode(token)
		user_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if user_id is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The session row must still exist; logging out deletes it
	try:
		row = db.get(AuthSession, jti)
		if not row or row.user_id != user_id:
			raise credentials_exception
		user_row = db.get(AuthUser, user_id)
		if user_row is None:
			raise credentials_exception
		row.last_activity_at = datetime.utcnow()
		db.add(row)
		db.commit()
	except HTTPException:
		raise
	except Exception:
		# On DB errors, fail closed
		raise credentials_exception
	return _user_from_row(user_row)


def get_current_session_id(token: str = Depends(oauth2_scheme)) -> Optional[str]:
	try:
		return _decode(token).get("jti")
	except JWTError:
		return None


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


class RegisterRequest(BaseModel):
	email: str
	password: str
	first_name: str
	last_name: str


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	email = normalize_email(req.email)
	password = req.password or ""
	first_name = (req.first_name or "").strip()
	last_name = (req.last_name or "").strip()
	if not email or not password:
		raise HTTPException(status_code=400, detail="email and password are required")
	if "@" not in email:
		raise HTTPException(status_code=400, detail="email is not valid")
	if not first_name or not last_name:
		raise HTTPException(status_code=400, detail="first_name and last_name are required")
	if len(password) < 6:
		raise HTTPException(status_code=400, detail="password must be at least 6 characters")
	existing = db.query(AuthUser).filter(AuthUser.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="Email already in use")
	row = AuthUser(email=email, password_hash=hash_password(password), first_name=first_name, last_name=last_name)
	db.add(row)
	db.commit()
	db.refresh(row)
	send_verification(row)
	return {"ok": True, "id": row.id}


class VerifyRequest(BaseModel):
	token: str


@router.post("/verify")
async def verify_email(req: VerifyRequest, db: Session = Depends(get_db)):
	invalid = HTTPException(status_code=400, detail="Invalid or expired verification token")
	try:
		payload = _decode(req.token)
	except JWTError:
		raise invalid
	if payload.get("purpose") != VERIFY_PURPOSE or not payload.get("sub"):
		raise invalid
	row = db.get(AuthUser, payload["sub"])
	# A token issued for a previous address does not verify the new one
	if row is None or row.email != payload.get("email"):
		raise invalid
	row.email_verified = True
	db.commit()
	return {"ok": True, "email_verified": True}


@router.post("/verify/resend")
async def resend_verification(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if user.email_verified:
		return {"ok": True, "email_verified": True}
	row = db.get(AuthUser, user.id)
	send_verification(row)
	return {"ok": True, "email_verified": False}


@router.post("/logout")
async def logout(
	user: User = Depends(get_current_user),
	session_id: Optional[str] = Depends(get_current_session_id),
	db: Session = Depends(get_db),
):
	if session_id:
		row = db.get(AuthSession, session_id)
		if row is not None:
			db.delete(row)
			db.commit()
	return {"ok": True}
