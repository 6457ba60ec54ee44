import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Role(str, enum.Enum):
    """Closed set of roles. Stored uppercase (v1 ``papel``)."""

    PROFESSOR = "PROFESSOR"
    ADMIN = "ADMIN"

    @classmethod
    def canonical(cls, value) -> "Role":
        """Map any casing of a role label (or a Role) to the enum member."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown role: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None

    @property
    def user_type(self) -> str:
        """The v2 ``tipo_usuario`` spelling of this role."""
        return self.value.lower()


class TimestampMixin:
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # v1 representation
    full_name = Column(String(100))
    role = Column(String(20), nullable=False, default=Role.PROFESSOR.value)

    # v2 representation
    first_name = Column(String(50))
    last_name = Column(String(50))
    user_type = Column(String(20), nullable=False, default=Role.PROFESSOR.user_type)
    phone = Column(String(11))

    photo = Column(String(500))

    subjects = relationship("Subject", back_populates="professor")
    questions = relationship("Question", back_populates="author")

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"


class Subject(Base, TimestampMixin):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    professor_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    professor = relationship("User", back_populates="subjects")
    questions = relationship("Question", back_populates="subject")


class Question(Base, TimestampMixin):
    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint("difficulty BETWEEN 1 AND 5", name="ck_questions_difficulty"),
    )

    id = Column(Integer, primary_key=True, index=True)
    statement = Column(Text, nullable=False)
    difficulty = Column(SmallInteger, nullable=False)
    correct_answer = Column(Text)
    subject_id = Column(
        Integer, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    author_id = Column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    is_active = Column(Boolean, default=True, nullable=False)

    subject = relationship("Subject", back_populates="questions")
    author = relationship("User", back_populates="questions")
