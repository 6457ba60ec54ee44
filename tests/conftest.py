import os

os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256!")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("UPLOADCARE_PUBLIC_KEY", "test-public-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from exam_generator.database import Base, enable_sqlite_foreign_keys, get_db
from exam_generator.main import app
from exam_generator.models import Question, Role, Subject, User
from exam_generator.security import Identity, get_token_service, hash_password
from exam_generator.uploads import UploadcareUploader, get_photo_uploader

# In-memory SQLite database shared across connections via StaticPool.
TEST_DATABASE_URL = "sqlite://"
DEFAULT_PASSWORD = "Senha123"
FAKE_CDN_URL = "https://ucarecdn.com/5d3a1c0e-0000-4000-8000-000000000001/"


engine_test = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine_test)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine_test,
)


class FakeUploader(UploadcareUploader):
    """Records uploads instead of calling Uploadcare."""

    def __init__(self, url: str = FAKE_CDN_URL, error: Exception = None):
        super().__init__(public_key="test-public-key")
        self.url = url
        self.error = error
        self.calls = []

    async def upload(self, content, filename, content_type):
        self.calls.append((filename, content_type, len(content)))
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture()
def db_session():
    """Fresh schema for every test."""
    Base.metadata.drop_all(bind=engine_test)
    Base.metadata.create_all(bind=engine_test)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def uploader():
    return FakeUploader()


def _override(db_session, uploader):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_photo_uploader] = lambda: uploader


@pytest.fixture()
def client(db_session, uploader):
    """TestClient served by the in-memory database and the fake uploader."""
    _override(db_session, uploader)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def unsafe_client(db_session, uploader):
    """Like ``client`` but returns 500 responses instead of re-raising."""
    _override(db_session, uploader)

    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def user_factory(db_session):
    """Create users directly in the database.

    ``legacy=True`` mimics a record created through v1: no name parts.
    """
    counter = {"n": 0}

    def _create_user(
        email: str = None,
        role: Role = Role.PROFESSOR,
        first_name: str = "Ana",
        last_name: str = "Souza",
        legacy: bool = False,
        password: str = DEFAULT_PASSWORD,
        phone: str = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@escola.com",
            password_hash=hash_password(password),
            full_name=f"{first_name} {last_name}",
            first_name=None if legacy else first_name,
            last_name=None if legacy else last_name,
            role=role.value,
            user_type=role.user_type,
            phone=phone,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture()
def subject_factory(db_session):
    counter = {"n": 0}

    def _create_subject(professor: User, name: str = None, active: bool = True) -> Subject:
        counter["n"] += 1
        subject = Subject(
            name=name or f"Disciplina {counter['n']}",
            is_active=active,
            professor_id=professor.id,
        )
        db_session.add(subject)
        db_session.commit()
        db_session.refresh(subject)
        return subject

    return _create_subject


@pytest.fixture()
def question_factory(db_session):
    def _create_question(
        subject: Subject, author: User, difficulty: int = 3, active: bool = True
    ) -> Question:
        question = Question(
            statement="Quanto é 2 + 2?",
            difficulty=difficulty,
            correct_answer="4",
            subject_id=subject.id,
            author_id=author.id,
            is_active=active,
        )
        db_session.add(question)
        db_session.commit()
        db_session.refresh(question)
        return question

    return _create_question


@pytest.fixture()
def token_for():
    def _token(user: User) -> str:
        identity = Identity(id=user.id, email=user.email, role=Role.canonical(user.role))
        return get_token_service().issue(identity)

    return _token


@pytest.fixture()
def auth_headers(token_for):
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers


@pytest.fixture()
def admin(user_factory):
    return user_factory(email="admin@escola.com", role=Role.ADMIN, first_name="Root", last_name="Admin")


@pytest.fixture()
def professor(user_factory):
    return user_factory(email="prof@escola.com", first_name="Joao", last_name="Silva")


@pytest.fixture()
def session_factory(db_session):
    """Session factory bound to the test database, for code that opens its own sessions."""
    return TestingSessionLocal
