from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Integer, Text, Index
from sqlalchemy.orm import relationship
from .database import Base
import json
import uuid
from datetime import datetime


class User(Base):
    """Administrator allow-list entry. Only e-mails listed here may sign in."""
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    image = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)

    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")


class RefreshToken(Base):
    """Stores refresh tokens for JWT authentication with rotation support"""
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_hash = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    revoked = Column(Boolean, default=False)

    user = relationship("User", back_populates="refresh_tokens")


class SchoolClass(Base):
    """A homeroom responsible for one or more cleaning areas."""
    __tablename__ = "classes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    areas = relationship("Area", back_populates="school_class", cascade="all, delete-orphan")


class Area(Base):
    __tablename__ = "areas"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    # Global display order across all areas, dense 1..N
    rank = Column(Integer, unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school_class = relationship("SchoolClass", back_populates="areas")
    reports = relationship("Report", back_populates="area", cascade="all, delete-orphan")


class Default(Base):
    """Canned deficiency message offered as a quick pick while inspecting."""
    __tablename__ = "defaults"
    id = Column(Integer, primary_key=True, autoincrement=True)
    shorthand = Column(String, unique=True, nullable=False)
    text = Column(String, unique=True, nullable=False)
    rank = Column(Integer, unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Report(Base):
    __tablename__ = "reports"
    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    text = Column(String, nullable=False)
    evidence = Column(Text, nullable=True)  # JSON array of storage paths
    comment = Column(Text, nullable=True)
    repeated = Column(Integer, nullable=False, default=0)  # consecutive days reported
    area_id = Column(Integer, ForeignKey("areas.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    area = relationship("Area", back_populates="reports")

    __table_args__ = (
        Index('idx_reports_text', 'text'),
        Index('idx_reports_area_date', 'area_id', 'date'),
    )

    @property
    def evidence_paths(self) -> list:
        """Evidence column decoded to a list; empty when unset or malformed."""
        if not self.evidence:
            return []
        try:
            paths = json.loads(self.evidence)
        except json.JSONDecodeError:
            return []
        return [p for p in paths if isinstance(p, str)] if isinstance(paths, list) else []
