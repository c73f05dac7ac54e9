"""SQLModel-backed fingerprint and ingredient mapping stores."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError
from sqlmodel import Field, Session, SQLModel, create_engine, select

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from recipe_engine.models.batch import RecipeFingerprint


class FingerprintDB(SQLModel, table=True):
    """SQLite table for recipe fingerprints."""

    __tablename__ = "recipe_fingerprints"
    __table_args__ = (UniqueConstraint("provider_id", "fingerprint_hash", name="uq_fingerprint_provider_hash"),)

    id: int | None = Field(default=None, primary_key=True)
    provider_id: str = Field(index=True)
    fingerprint_hash: str = Field(index=True)
    normalized_url: str
    created_at: datetime


class IngredientMappingDB(SQLModel, table=True):
    """SQLite table mapping provider ingredient codes to canonical forms."""

    __tablename__ = "ingredient_mappings"
    __table_args__ = (UniqueConstraint("provider_id", "provider_code", name="uq_mapping_provider_code"),)

    id: int | None = Field(default=None, primary_key=True)
    provider_id: str = Field(index=True)
    provider_code: str
    canonical_form: str


def create_sqlite_engine(path: Path) -> Engine:
    """Create the SQLite engine and any missing tables."""
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{path}", echo=False, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    return engine


class SqliteFingerprintStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _exists(self, provider_id: str, fingerprint_hash: str) -> bool:
        with Session(self.engine) as session:
            statement = select(FingerprintDB.id).where(
                FingerprintDB.provider_id == provider_id,
                FingerprintDB.fingerprint_hash == fingerprint_hash,
            )
            return session.exec(statement).first() is not None

    def _insert(self, fingerprint: RecipeFingerprint) -> None:
        with Session(self.engine) as session:
            session.add(FingerprintDB(**fingerprint.model_dump()))
            try:
                session.commit()
            except IntegrityError:
                # First writer wins; fingerprints are never updated
                session.rollback()

    async def exists(self, provider_id: str, fingerprint_hash: str) -> bool:
        return await asyncio.to_thread(self._exists, provider_id, fingerprint_hash)

    async def insert(self, fingerprint: RecipeFingerprint) -> None:
        await asyncio.to_thread(self._insert, fingerprint)


class SqliteIngredientMappingStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _get(self, provider_id: str, provider_code: str) -> str | None:
        with Session(self.engine) as session:
            statement = select(IngredientMappingDB.canonical_form).where(
                IngredientMappingDB.provider_id == provider_id,
                IngredientMappingDB.provider_code == provider_code,
            )
            return session.exec(statement).first()

    def _put(self, provider_id: str, provider_code: str, canonical_form: str) -> None:
        with Session(self.engine) as session:
            existing = session.exec(
                select(IngredientMappingDB).where(
                    IngredientMappingDB.provider_id == provider_id,
                    IngredientMappingDB.provider_code == provider_code,
                )
            ).first()
            if existing is None:
                existing = IngredientMappingDB(provider_id=provider_id, provider_code=provider_code, canonical_form="")
            existing.canonical_form = canonical_form
            session.add(existing)
            session.commit()

    async def get(self, provider_id: str, provider_code: str) -> str | None:
        return await asyncio.to_thread(self._get, provider_id, provider_code)

    async def put(self, provider_id: str, provider_code: str, canonical_form: str) -> None:
        await asyncio.to_thread(self._put, provider_id, provider_code, canonical_form)
