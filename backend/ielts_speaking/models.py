from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer
from .db import Base



class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(32), primary_key=True, index=True)
	email = Column(String(256), unique=True, index=True, nullable=False)
	name = Column(String(128), nullable=False)
	password_hash = Column(String(256), nullable=False)
	plan = Column(String(16), default="free", nullable=False)
	practice_count = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# jti of the issued access token
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)
