"""Idempotent demo data: one admin, some professors, their subjects and questions.

Run with ``python -m exam_generator.seeds --professors 3``.
"""

import argparse
import logging
from typing import Dict

from faker import Faker

from . import models
from .config import get_settings
from .database import Base, engine, session_scope
from .reconciliation import columns_from_v2
from .schemas import UserCreateV2
from .security import hash_password

logger = logging.getLogger(__name__)

fake = Faker("pt_BR")
Faker.seed(1234)


def get_or_create_user(session, data: UserCreateV2) -> models.User:
    user = session.query(models.User).filter(models.User.email == data.email).first()
    if user is None:
        user = models.User(password_hash=hash_password(data.senha), **columns_from_v2(data))
        session.add(user)
        session.flush()
    return user


def seed(
    professors: int,
    subjects_per_professor: int,
    questions_per_subject: int,
    session_factory=None,
) -> Dict[str, int]:
    """Seed the database; existing rows (matched by email / name) are kept.

    Returns how many rows of each kind were created in this run.
    """
    settings = get_settings()
    created = {"users": 0, "subjects": 0, "questions": 0}

    with session_scope(session_factory) as session:
        before = session.query(models.User).count()
        get_or_create_user(
            session,
            UserCreateV2(
                primeiro_nome=settings.default_admin_first_name,
                sobrenome=settings.default_admin_last_name,
                email=settings.default_admin_email,
                senha=settings.default_admin_password,
                tipo_usuario="admin",
            ),
        )

        for i in range(1, professors + 1):
            professor = get_or_create_user(
                session,
                UserCreateV2(
                    primeiro_nome=fake.first_name(),
                    sobrenome=fake.last_name(),
                    email=f"professor{i}@gerador-provas.com.br",
                    senha="Professor123",
                    telefone=fake.numerify("119########"),
                ),
            )

            for j in range(1, subjects_per_professor + 1):
                name = f"Disciplina {i}.{j}"
                subject = (
                    session.query(models.Subject).filter(models.Subject.name == name).first()
                )
                if subject is not None:
                    continue

                subject = models.Subject(name=name, professor_id=professor.id)
                session.add(subject)
                session.flush()
                created["subjects"] += 1

                for k in range(questions_per_subject):
                    session.add(
                        models.Question(
                            statement=fake.sentence(nb_words=12).rstrip(".") + "?",
                            difficulty=k % 5 + 1,
                            correct_answer=fake.sentence(),
                            subject_id=subject.id,
                            author_id=professor.id,
                        )
                    )
                    created["questions"] += 1

        created["users"] = session.query(models.User).count() - before

    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the database.")
    parser.add_argument(
        "--professors",
        type=int,
        default=3,
        help="Number of professors to create (default: 3).",
    )
    parser.add_argument(
        "--subjects-per-professor",
        type=int,
        default=2,
        help="Subjects owned by each professor (default: 2).",
    )
    parser.add_argument(
        "--questions-per-subject",
        type=int,
        default=5,
        help="Questions per subject (default: 5).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level.upper())
    Base.metadata.create_all(bind=engine)
    created = seed(
        professors=args.professors,
        subjects_per_professor=args.subjects_per_professor,
        questions_per_subject=args.questions_per_subject,
    )
    logger.info("Seeding complete: %s", created)


if __name__ == "__main__":
    main()
