from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..errors import PracticeLimitError
from ..models import AuthUser, AuthSession
from ..schemas import Plan

router = APIRouter(prefix="/auth", tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	id: str
	email: str
	name: str
	plan: Plan = "free"
	practice_count: int = 0
	sessions_remaining: Optional[int] = None


def sessions_remaining(row: AuthUser) -> Optional[int]:
	"""Remaining practice sessions, or None for unlimited plans."""
	if row.plan != "free":
		return None
	return max(settings.free_plan_sessions - (row.practice_count or 0), 0)


def to_user(row: AuthUser) -> User:
	return User(
		id=row.id,
		email=row.email,
		name=row.name,
		plan=row.plan,
		practice_count=row.practice_count or 0,
		sessions_remaining=sessions_remaining(row),
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
	row = db.query(AuthUser).filter(AuthUser.email == email.strip().lower()).first()
	if row and verify_password(password, row.password_hash):
		return row
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _issue_token(db: Session, user: AuthUser) -> Token:
	# Each token carries a server-side session id (jti) so it can be revoked
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": user.id, "jti": session_id})
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return Token(access_token=access_token)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	# OAuth2 form field is "username"; accounts are keyed by email
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect email or password")
	return _issue_token(db, user)


def get_current_account(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> AuthUser:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		user_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if user_id is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	row = db.get(AuthSession, jti)
	if not row or row.user_id != user_id:
		raise credentials_exception
	user = db.get(AuthUser, user_id)
	if user is None:
		raise credentials_exception
	row.last_activity_at = datetime.utcnow()
	db.commit()
	return user


def get_current_user(account: AuthUser = Depends(get_current_account)) -> User:
	return to_user(account)


def ensure_practice_allowed(account: AuthUser) -> None:
	remaining = sessions_remaining(account)
	if remaining is not None and remaining <= 0:
		raise PracticeLimitError(
			f"The free plan includes {settings.free_plan_sessions} practice sessions.",
			remediation="Upgrade to the standard or premium plan to keep practising.",
		)


def record_practice_session(db: Session, account: AuthUser) -> None:
	"""Count one started exam against the account's plan."""
	account.practice_count = (account.practice_count or 0) + 1
	db.commit()


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


class SignupRequest(BaseModel):
	email: str
	password: str = Field(min_length=6)
	name: str


class UpdateUserRequest(BaseModel):
	name: Optional[str] = None
	plan: Optional[Plan] = None


@router.post("/signup", status_code=201, response_model=Token)
async def signup(req: SignupRequest, db: Session = Depends(get_db)):
	email = (req.email or "").strip().lower()
	name = (req.name or "").strip()
	if not email or "@" not in email:
		raise HTTPException(status_code=400, detail="A valid email is required")
	if not name:
		raise HTTPException(status_code=400, detail="name is required")
	existing = db.query(AuthUser).filter(AuthUser.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="An account with this email already exists")
	row = AuthUser(id=uuid.uuid4().hex, email=email, name=name, password_hash=hash_password(req.password))
	db.add(row)
	db.commit()
	return _issue_token(db, row)


@router.patch("/me", response_model=User)
async def update_me(req: UpdateUserRequest, account: AuthUser = Depends(get_current_account), db: Session = Depends(get_db)):
	if req.name is not None:
		name = req.name.strip()
		if not name:
			raise HTTPException(status_code=400, detail="name cannot be empty")
		account.name = name
	if req.plan is not None:
		account.plan = req.plan
	db.commit()
	return to_user(account)
