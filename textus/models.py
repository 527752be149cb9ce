from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class StoredRecord(Base):
    __tablename__ = "stored_records"

    id = Column(String(64), primary_key=True)
    index_name = Column(String(255), primary_key=True)
    record_type = Column(String(64), nullable=False, index=True)
    text_id = Column(String(64), nullable=True, index=True)
    start = Column(Integer, nullable=True, index=True)
    end = Column("end_offset", Integer, nullable=True, index=True)
    source = Column(Text, nullable=False, default="{}")
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class TextPart(BaseModel):
    sequence: int
    text: str


class ImportRequest(BaseModel):
    metadata: Dict[str, Any] = Field(default_factory=dict)
    text: List[TextPart]
    semantics: List[Dict[str, Any]] = Field(default_factory=list)
    typography: List[Dict[str, Any]] = Field(default_factory=list)


class ImportResponse(BaseModel):
    textId: str


class TextRange(BaseModel):
    """Reconstructed text; offsets are absent when the whole text was requested."""

    text: str
    start: Optional[int] = None
    end: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TextFragment(BaseModel):
    textId: str
    text: str
    typography: List[Dict[str, Any]] = Field(default_factory=list)
    semantics: Optional[List[Dict[str, Any]]] = None
    start: Optional[int] = None
    end: Optional[int] = None


class TextSummary(BaseModel):
    title: Optional[Any] = None
    owners: Optional[Any] = None
    date: Optional[Any] = None


class HealthResponse(BaseModel):
    status: str
    store: str
    backend: str
