import argparse
import logging
from typing import Dict

from faker import Faker
from sqlalchemy import select
from sqlalchemy.engine import Engine

from .auth import PasswordHasher
from .config import get_settings
from .database import Base, create_db_engine, session_scope
from .models import Category, Galaxy, Planet, Question, Star, User

logger = logging.getLogger(__name__)

fake = Faker()
Faker.seed(1234)

CATEGORIES = [
    ("Astrophysics", "Stars, black holes and the physics that drives them."),
    ("Rocketry", "Propulsion, staging and getting to orbit."),
    ("Missions", "Past, present and planned exploration missions."),
    ("Observation", "Telescopes, astrophotography and sky watching."),
]

PLANETS = [
    ("Mercury", "terrestrial", 0, 0.39),
    ("Venus", "terrestrial", 0, 0.72),
    ("Earth", "terrestrial", 1, 1.0),
    ("Mars", "terrestrial", 2, 1.52),
    ("Jupiter", "gas giant", 95, 5.2),
    ("Saturn", "gas giant", 146, 9.58),
    ("Uranus", "ice giant", 28, 19.2),
    ("Neptune", "ice giant", 16, 30.05),
]

STARS = [
    ("Proxima Centauri", "M5.5Ve", "Centaurus", 4.24),
    ("Sirius", "A1V", "Canis Major", 8.6),
    ("Vega", "A0V", "Lyra", 25.0),
    ("Arcturus", "K1.5III", "Bootes", 36.7),
    ("Betelgeuse", "M1-M2Ia-ab", "Orion", 548.0),
    ("Rigel", "B8Ia", "Orion", 860.0),
]

GALAXIES = [
    ("Large Magellanic Cloud", "irregular", 0.16),
    ("Andromeda", "spiral", 2.5),
    ("Triangulum", "spiral", 2.73),
    ("Centaurus A", "elliptical", 12.0),
    ("Whirlpool", "spiral", 23.0),
]


def _existing_names(session, model) -> set:
    return set(session.scalars(select(model.name)).all())


def ensure_reference_data(session) -> None:
    """Insert any missing categories and exploration rows, keyed by name."""
    names = _existing_names(session, Category)
    for name, description in CATEGORIES:
        if name not in names:
            session.add(Category(name=name, description=description))

    names = _existing_names(session, Planet)
    for name, kind, moons, distance in PLANETS:
        if name not in names:
            session.add(Planet(name=name, type=kind, moons=moons, distance_au=distance))

    names = _existing_names(session, Star)
    for name, spectral_type, constellation, distance in STARS:
        if name not in names:
            session.add(
                Star(
                    name=name,
                    spectral_type=spectral_type,
                    constellation=constellation,
                    distance_ly=distance,
                )
            )

    names = _existing_names(session, Galaxy)
    for name, kind, distance in GALAXIES:
        if name not in names:
            session.add(Galaxy(name=name, type=kind, distance_mly=distance))


def seed_reference_data(engine: Engine) -> None:
    with session_scope(engine) as session:
        ensure_reference_data(session)


def seed(engine: Engine, users_count: int, questions_per_user: int, hasher: PasswordHasher) -> None:
    """Seed demo pilots and their questions, deterministically and idempotently.

    - Users are identified by username: pilot{n}
    - Each pilot's password is pilot-password-{n}
    - Question titles are unique per pilot, so re-running adds nothing
    """
    with session_scope(engine) as session:
        ensure_reference_data(session)
        session.flush()

        categories = session.scalars(select(Category).order_by(Category.id)).all()
        existing_users: Dict[str, User] = {
            u.username: u for u in session.scalars(select(User)).all()
        }

        for i in range(1, users_count + 1):
            username = f"pilot{i}"
            user = existing_users.get(username)
            if not user:
                user = User(
                    username=username,
                    email=f"{username}@example.com",
                    password_hash=hasher.hash(f"pilot-password-{i}"),
                )
                session.add(user)
                session.flush()  # assign user.id
                existing_users[username] = user

            for j in range(1, questions_per_user + 1):
                title = f"Transmission {j} from {username}"
                existing = session.scalar(
                    select(Question).where(
                        Question.user_id == user.id,
                        Question.title == title,
                    )
                )
                if existing:
                    continue

                session.add(
                    Question(
                        title=title,
                        content=fake.paragraph(nb_sentences=3),
                        category=categories[(i + j) % len(categories)],
                        author=user,
                    )
                )


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Seed the forum database.")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Database to seed (default: DATABASE_URL from the environment).",
    )
    parser.add_argument(
        "--users",
        type=int,
        default=5,
        help="Number of demo pilots to create (default: 5).",
    )
    parser.add_argument(
        "--questions-per-user",
        type=int,
        default=3,
        help="Number of questions per pilot (default: 3).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    engine = create_db_engine(args.database_url, pool_size=settings.db_pool_size)
    Base.metadata.create_all(bind=engine)
    seed(
        engine,
        users_count=args.users,
        questions_per_user=args.questions_per_user,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
    )
    logger.info("Seeding complete.")


if __name__ == "__main__":
    main()
