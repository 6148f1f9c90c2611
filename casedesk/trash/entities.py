"""
SQLAlchemy models for the case-management tables touched by the trash lifecycle.

Only the columns the trash subsystem reads are mapped; the remaining payload of
each table is owned by the wider application.
"""

import uuid
from datetime import datetime
from typing import Dict, Optional, Type

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..config import CaseStatus, InvoiceStatus
from .mixins import SoftDeleteMixin, utcnow
from .models import EntityKind


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for all CaseDesk tables."""


class User(Base):
    """Application user; read only to resolve the acting principal's role."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)


class Case(Base, SoftDeleteMixin):
    """Assistance case."""

    __tablename__ = "cases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    case_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CaseStatus.DRAFT.value, index=True
    )
    patient_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class CaseAction(Base):
    """Service action performed within a case."""

    __tablename__ = "case_actions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    case_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cases.id"), nullable=False, index=True
    )
    service_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CaseDocument(Base):
    """File attached to a case."""

    __tablename__ = "case_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    case_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cases.id"), nullable=False, index=True
    )
    document_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="patient"
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)


class Invoice(Base, SoftDeleteMixin):
    """Invoice issued for a case."""

    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.DRAFT.value, index=True
    )
    total: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0
    )
    # Plain reference: invoices outlive purged cases.
    case_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)


class Partner(Base, SoftDeleteMixin):
    """Insurance partner or client organisation."""

    __tablename__ = "partners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    legal_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)


class OurCompany(Base, SoftDeleteMixin):
    """Issuing company used as invoice sender."""

    __tablename__ = "our_companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    legal_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")


ENTITY_MODELS: Dict[EntityKind, Type[Base]] = {
    EntityKind.CASE: Case,
    EntityKind.INVOICE: Invoice,
    EntityKind.PARTNER: Partner,
    EntityKind.OUR_COMPANY: OurCompany,
}

# Every mapped table, addressable by name (top-level kinds and child tables).
MODELS_BY_TABLE: Dict[str, Type[Base]] = {
    mapper.class_.__tablename__: mapper.class_ for mapper in Base.registry.mappers
}

_missing = [kind.value for kind in EntityKind if kind not in ENTITY_MODELS]
if _missing:
    raise RuntimeError(f"Entity kinds without a model: {_missing}")

for _kind, _model in ENTITY_MODELS.items():
    if _model.__tablename__ != _kind.table:
        raise RuntimeError(
            f"Model {_model.__name__} maps to {_model.__tablename__}, "
            f"expected {_kind.table}"
        )
