from __future__ import annotations
import random
from typing import Sequence
from faker import Faker
from sqlalchemy.orm import Session

from forum.models import (
    Category, ContentStatus, ContentType, Post, Question, Role, School, SchoolCategory, Sex, User,
)
from forum.security import hash_password
from forum.services.reactions import REACTION_KINDS, reconcile_counters

SEED = 1337
DEMO_PASSWORD = "password123"

fake = Faker()


def seed_random_generators(seed: int = SEED) -> None:
    """Make a seeding run reproducible."""
    random.seed(seed)
    Faker.seed(seed)
    fake.seed_instance(seed)
    fake.unique.clear()


def make_schools(db: Session, n_schools: int) -> list[School]:
    schools = [
        School(name=f"{fake.unique.city()} University", number=10000 + i, introduce=fake.sentence())
        for i in range(1, n_schools + 1)
    ]
    db.add_all(schools); db.flush()
    return schools


def make_categories(db: Session, schools: Sequence[School], n_roots: int = 6, max_children: int = 4) -> list[Category]:
    """
    Two-level category tree, each category linked to a random subset of schools.
    """
    categories: list[Category] = []
    for _ in range(n_roots):
        root = Category(name=fake.unique.word().title())
        db.add(root); db.flush()
        categories.append(root)
        for _ in range(random.randint(1, max_children)):
            child = Category(name=f"{root.name} {fake.unique.word()}", parent_id=root.id)
            db.add(child); categories.append(child)
    db.flush()

    for category in categories:
        linked = random.sample(list(schools), k=random.randint(1, len(schools)))
        for school in linked:
            db.add(SchoolCategory(
                category_id=category.id, school_id=school.id,
                exam_frequency=random.randint(1, 5),
            ))
    db.flush()
    return categories


def make_users(db: Session, schools: Sequence[School], n_users: int) -> list[User]:
    # bcrypt is slow on purpose; every demo user shares one hash
    hashed = hash_password(DEMO_PASSWORD)
    users = [
        User(
            email=fake.unique.email(),
            username=fake.unique.user_name()[:45],
            password=hashed,
            nickname=fake.first_name()[:45].ljust(2, "_"),
            sex=random.choice(list(Sex)),
            role=Role.normal,
            introduce=fake.sentence(),
            target_school_id=random.choice(schools).id if random.random() < 0.8 else None,
        )
        for _ in range(n_users)
    ]
    db.add_all(users); db.flush()
    return users


def _status() -> ContentStatus:
    return random.choices(list(ContentStatus), weights=[8, 1, 1])[0]


def make_posts(db: Session, users: Sequence[User], schools: Sequence[School], n_posts: int,
               frac_with_replies: float = 0.5) -> list[Post]:
    posts: list[Post] = []
    for _ in range(n_posts):
        p = Post(
            title=fake.sentence(nb_words=6),
            content=fake.paragraph(nb_sentences=5),
            user_id=random.choice(users).id,
            school_id=random.choice(schools).id if random.random() < 0.7 else None,
            type=random.choice(list(ContentType)),
            status=_status(),
            is_recommended=random.random() < 0.1,
            created_at=fake.date_time_between(start_date="-60d", end_date="now"),
        )
        db.add(p); posts.append(p)
    db.flush()

    replies = _make_replies(db, Post, posts, users, frac_with_replies)
    return posts + replies


def make_questions(db: Session, users: Sequence[User], categories: Sequence[Category], n_questions: int,
                   frac_with_replies: float = 0.5) -> list[Question]:
    questions: list[Question] = []
    for _ in range(n_questions):
        q = Question(
            title=fake.sentence(nb_words=8).rstrip(".") + "?",
            content=fake.paragraph(nb_sentences=3),
            user_id=random.choice(users).id,
            category_id=random.choice(categories).id,
            type=ContentType.help_request,
            difficulty=random.randint(1, 5),
            status=_status(),
            created_at=fake.date_time_between(start_date="-60d", end_date="now"),
        )
        db.add(q); questions.append(q)
    db.flush()

    replies = _make_replies(db, Question, questions, users, frac_with_replies)
    return questions + replies


def _make_replies(db: Session, model, roots: Sequence, users: Sequence[User], frac_with_replies: float) -> list:
    """Up to three replies per root, and up to two replies to each of those."""
    replies = []
    for root in roots:
        if random.random() >= frac_with_replies:
            continue
        for _ in range(random.randint(1, 3)):
            child = model(
                title=f"Re: {root.title}"[:255], content=fake.sentence(),
                user_id=random.choice(users).id, parent_id=root.id, type=root.type,
            )
            db.add(child); db.flush()
            replies.append(child)
            for _ in range(random.randint(0, 2)):
                grandchild = model(
                    title=f"Re: {child.title}"[:255], content=fake.sentence(),
                    user_id=random.choice(users).id, parent_id=child.id, type=root.type,
                )
                db.add(grandchild); replies.append(grandchild)
    db.flush()
    return replies


def make_reactions(db: Session, posts: Sequence[Post], questions: Sequence[Question], users: Sequence[User],
                   max_per_item: int = 15) -> None:
    """
    Scatter likes and favorites, then derive every counter from the join rows.
    """
    contents = {"post": posts, "question": questions}
    for kind in REACTION_KINDS:
        for item in contents[kind.content.name]:
            n = random.randint(0, min(max_per_item, len(users)))
            for u in random.sample(list(users), k=n):
                db.add(kind.model(content_id=item.id, user_id=u.id))
        db.flush()
        reconcile_counters(db, kind)
