from __future__ import annotations
from fastapi import Request
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


Base = declarative_base()


def make_engine(database_url: str | None = None) -> Engine:
	url = database_url or settings.database_url or "sqlite:///./ielts_speaking.db"
	kwargs = {}
	if url.startswith("sqlite"):
		kwargs["connect_args"] = {"check_same_thread": False}
		if url in ("sqlite://", "sqlite:///:memory:"):
			# One shared connection so every session sees the same in-memory database
			kwargs["poolclass"] = StaticPool
	return create_engine(url, future=True, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
	return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def init_db(engine: Engine) -> None:
	# Import models so they register on Base.metadata
	from . import models  # noqa: F401

	Base.metadata.create_all(bind=engine)
	ensure_schema(engine)


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(engine: Engine) -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "auth_users" in tables:
		cols = {c["name"] for c in inspector.get_columns("auth_users")}
		with engine.begin() as conn:
			if "plan" not in cols:
				conn.exec_driver_sql("ALTER TABLE auth_users ADD COLUMN plan VARCHAR(16) DEFAULT 'free' NOT NULL")
			if "practice_count" not in cols:
				conn.exec_driver_sql("ALTER TABLE auth_users ADD COLUMN practice_count INTEGER DEFAULT 0 NOT NULL")


def get_db(request: Request):
	db = request.app.state.session_factory()
	try:
		yield db
	finally:
		db.close()
