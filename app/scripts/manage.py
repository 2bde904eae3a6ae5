"""Account and database maintenance commands.

    python -m app.scripts.manage seed [--reset]
    python -m app.scripts.manage create-user EMAIL --role manager --name "..." --password "..."
    python -m app.scripts.manage set-role EMAIL ROLE
    python -m app.scripts.manage reset-password EMAIL PASSWORD
    python -m app.scripts.manage list-users [--role learner]
    python -m app.scripts.manage enable-learner-view EMAIL
"""

import asyncio
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import UserRole
from app.core.security import SecurityService
from app.core.settings import settings
from app.db import session as db_session
from app.db.models.database import Base, User

app = typer.Typer(
    name="manage",
    help="Maintenance commands for the e-learning backend.",
    no_args_is_help=True,
)

console = Console()


def _run(coro):
    return asyncio.run(coro)


async def _find_user(db: AsyncSession, email: str) -> Optional[User]:
    return await db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))


async def _require_user(db: AsyncSession, email: str) -> User:
    user = await _find_user(db, email)
    if not user:
        console.print(f"[red]✗ User {email} not found[/red]")
        raise typer.Exit(code=1)
    return user


# ==============================
# 🧩 SEED
# ==============================


async def seed_async(reset: bool) -> User:
    await db_session.init_models()
    async with db_session.AsyncSessionLocal() as db:
        try:
            if reset:
                for table in reversed(Base.metadata.sorted_tables):
                    await db.execute(table.delete())
                logger.warning("All data wiped")

            email = settings.MANAGER_EMAIL.strip().lower()
            manager = await _find_user(db, email)
            if not manager:
                manager = User(email=email, name=settings.MANAGER_NAME)
                db.add(manager)
            manager.name = settings.MANAGER_NAME
            manager.role = UserRole.MANAGER.value
            manager.department = settings.MANAGER_DEPARTMENT
            manager.password_hash = SecurityService.hash_password(settings.MANAGER_PASSWORD)
            manager.is_email_verified = True
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    logger.info(f"Bootstrap manager {email} ready")
    return manager


@app.command()
def seed(
    reset: bool = typer.Option(False, "--reset", help="Wipe every table before seeding"),
):
    """Create or refresh the bootstrap manager account."""
    manager = _run(seed_async(reset))
    console.print(f"[green]✓ Manager {manager.email} seeded[/green]")


# ==============================
# 🧩 USERS
# ==============================


async def create_user_async(
    email: str, role: UserRole, name: str, password: str, department: Optional[str]
) -> User:
    async with db_session.AsyncSessionLocal() as db:
        try:
            user = await _find_user(db, email)
            if not user:
                user = User(email=email.strip().lower(), name=name)
                db.add(user)
            user.name = name
            user.role = role.value
            user.department = department
            user.password_hash = SecurityService.hash_password(password)
            user.is_email_verified = True
            user.email_verification_token = None
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    return user


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Login email"),
    role: UserRole = typer.Option(UserRole.LEARNER, "--role", "-r"),
    name: str = typer.Option(..., "--name", "-n"),
    password: str = typer.Option(..., "--password", "-p"),
    department: Optional[str] = typer.Option(None, "--department", "-d"),
):
    """Create a verified user, or overwrite the existing one with that email."""
    user = _run(create_user_async(email, role, name, password, department))
    console.print(f"[green]✓ {user.email} saved as {user.role}[/green]")


async def set_role_async(email: str, role: UserRole) -> User:
    async with db_session.AsyncSessionLocal() as db:
        user = await _require_user(db, email)
        user.role = role.value
        await db.commit()
    return user


@app.command("set-role")
def set_role(email: str, role: UserRole):
    """Change the role of an existing user."""
    user = _run(set_role_async(email, role))
    console.print(f"[green]✓ {user.email} is now {user.role}[/green]")


async def reset_password_async(email: str, password: str) -> User:
    async with db_session.AsyncSessionLocal() as db:
        user = await _require_user(db, email)
        user.password_hash = SecurityService.hash_password(password)
        await db.commit()
    return user


@app.command("reset-password")
def reset_password(email: str, password: str):
    """Overwrite a user's password."""
    if len(password) < 6:
        console.print("[red]✗ Password must be at least 6 characters[/red]")
        raise typer.Exit(code=1)
    user = _run(reset_password_async(email, password))
    console.print(f"[green]✓ Password reset for {user.email}[/green]")


async def list_users_async(role: Optional[UserRole]) -> list[User]:
    async with db_session.AsyncSessionLocal() as db:
        stmt = select(User).order_by(User.role, User.email)
        if role:
            stmt = stmt.where(User.role == role.value)
        return list((await db.scalars(stmt)).all())


@app.command("list-users")
def list_users(role: Optional[UserRole] = typer.Option(None, "--role", "-r")):
    users = _run(list_users_async(role))
    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title=f"Users ({len(users)})")
    table.add_column("Email")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Verified")
    table.add_column("Learner view")
    for u in users:
        table.add_row(
            u.email,
            u.name,
            u.role,
            "yes" if u.is_email_verified else "no",
            "yes" if u.can_switch_to_learner_view else "no",
        )
    console.print(table)


async def enable_learner_view_async(email: str) -> User:
    async with db_session.AsyncSessionLocal() as db:
        user = await _require_user(db, email)
        user.can_switch_to_learner_view = True
        await db.commit()
    return user


@app.command("enable-learner-view")
def enable_learner_view(email: str):
    """Allow a staff account to switch to the learner view."""
    user = _run(enable_learner_view_async(email))
    console.print(f"[green]✓ {user.email} can switch to learner view[/green]")


if __name__ == "__main__":
    app()
