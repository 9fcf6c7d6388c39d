# forum/cli.py
from typing import Optional

import typer
from sqlalchemy.exc import OperationalError

from forum.db import engine, get_session, wait_for_database
from forum.errors import ForumError
from forum.models import Base, Role, Sex
from forum.services import seeder
from forum.services.accounts import create_user
from forum.services.reactions import REACTION_KINDS, reconcile_counters

app = typer.Typer(help="Exam forum operator CLI")


def _connect() -> None:
    try:
        wait_for_database()
    except OperationalError as e:
        typer.echo(f"❌ Database is not reachable: {e}", err=True)
        raise typer.Exit(1)


@app.command("init-db")
def init_db_cmd():
    """Create every table that does not exist yet (use alembic for upgrades)."""
    _connect()
    Base.metadata.create_all(bind=engine)
    typer.echo("✓ Tables created")


@app.command("seed")
def seed_cmd(
    schools: int = typer.Option(5, help="Number of schools", min=1),
    users: int = typer.Option(50, help="Number of users", min=1),
    posts: int = typer.Option(200, help="Number of top-level posts"),
    questions: int = typer.Option(200, help="Number of top-level questions"),
):
    """Populate the database with demo data."""
    _connect()
    # Set deterministic seeds for reproducible data
    seeder.seed_random_generators()

    with get_session() as db:
        sc = seeder.make_schools(db, schools)
        cats = seeder.make_categories(db, sc)
        us = seeder.make_users(db, sc, users)
        ps = seeder.make_posts(db, us, sc, posts)
        qs = seeder.make_questions(db, us, cats, questions)
        seeder.make_reactions(db, ps, qs, us)
    typer.echo(
        f"Seed complete: schools={schools}, users={users}, posts={len(ps)}, questions={len(qs)} "
        f"(demo password: {seeder.DEMO_PASSWORD})"
    )


@app.command("reconcile-counters")
def reconcile_counters_cmd(
    kind: Optional[str] = typer.Option(
        None, "--kind", "-k", help="One of postlikes, postfavorites, questionlikes, questionfavorites"
    ),
):
    """Recompute like and favorite counters from the join tables."""
    kinds = [k for k in REACTION_KINDS if kind is None or k.name == kind]
    if not kinds:
        typer.echo(f"❌ Unknown reaction kind: {kind}", err=True)
        raise typer.Exit(1)

    _connect()
    with get_session() as db:
        for reaction_kind in kinds:
            repaired = reconcile_counters(db, reaction_kind)
            typer.echo(f"{reaction_kind.name:<18} {len(repaired):>5} counters repaired")
            for row in repaired:
                typer.echo(f"  #{row['id']}: {row['stored']} -> {row['actual']}")


@app.command("create-admin")
def create_admin_cmd(
    email: str = typer.Option(..., help="Admin email"),
    username: str = typer.Option(..., help="Admin username"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    nickname: str = typer.Option("Admin", help="Display name"),
):
    """Create an administrator account."""
    _connect()
    try:
        with get_session() as db:
            user = create_user(
                db,
                {
                    "email": email, "username": username, "password": password,
                    "nickname": nickname, "sex": Sex.unspecified, "role": Role.admin,
                },
                allow_role=True,
            )
            user_id = user.id
    except ForumError as e:
        for message in e.errors:
            typer.echo(f"❌ {message}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✓ Admin {username} created with id {user_id}")


if __name__ == "__main__":
    app()
