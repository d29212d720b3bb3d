"""Operator commands for accounts: ``pet-adoption-api user ...``.

These bypass HTTP authorization on purpose; the first super_admin has to
come from somewhere.
"""

import asyncio

import typer

from pet_adoption_api.models.user import UserRole

user_app = typer.Typer()

_ROLES = "/".join(role.value for role in UserRole)


def _database_url() -> str:
    from pet_adoption_api.core.config import get_settings

    return get_settings().database_url


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


@user_app.command("create")
def create_user(
    username: str = typer.Option(..., prompt=True, help="Username"),
    email: str = typer.Option(..., prompt=True, help="Email address"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password"),
    role: str = typer.Option("user", prompt=True, help=f"Role ({_ROLES})"),
    if_not_exists: bool = typer.Option(False, "--if-not-exists", help="Succeed quietly when the user exists"),
) -> None:
    """Create an account with any role."""
    asyncio.run(_create_user(username, email, password, role, if_not_exists=if_not_exists))


async def _create_user(username: str, email: str, password: str, role: str, *, if_not_exists: bool) -> None:
    from pet_adoption_api.core.database import standalone_session
    from pet_adoption_api.core.errors import ConflictError
    from pet_adoption_api.schemas.auth import UserCreateRequest
    from pet_adoption_api.services.auth_service import create_user

    request = UserCreateRequest(username=username, email=email, password=password, role=role)
    async with standalone_session(_database_url()) as session:
        try:
            user = await create_user(session, request)
        except ConflictError as exc:
            if not if_not_exists:
                raise _fail(exc.message) from exc
            typer.echo(f"User '{username}' already exists, skipping (--if-not-exists)")
            return
    typer.echo(f"User '{user.username}' created with role '{user.role}'")


@user_app.command("list")
def list_users() -> None:
    """Print every account with its role, status and lockout."""
    asyncio.run(_list_users())


async def _list_users() -> None:
    from pet_adoption_api.core.database import standalone_session
    from pet_adoption_api.services.auth_service import list_users

    async with standalone_session(_database_url()) as session:
        users, total = await list_users(session, page_size=1000)

    row = "{:<20} {:<30} {:<12} {:<22} {:<25}"
    typer.echo(row.format("Username", "Email", "Role", "Status", "Locked until"))
    typer.echo("-" * 112)
    for user in users:
        locked = user.lock_until.isoformat(timespec="seconds") if user.lock_until else "-"
        typer.echo(row.format(user.username, user.email, user.role, user.status, locked))
    typer.echo(f"\nTotal: {total}")


async def _update_user(login: str, *, unlock: bool = False, role: str | None = None) -> None:
    from pet_adoption_api.core.database import standalone_session
    from pet_adoption_api.services.auth_service import get_user_by_login, unlock_user

    async with standalone_session(_database_url()) as session:
        user = await get_user_by_login(session, login)
        if user is None:
            raise _fail(f"user '{login}' not found")
        if unlock:
            await unlock_user(session, user)
            typer.echo(f"User '{user.username}' unlocked")
        if role is not None:
            user.role = role
            await session.commit()
            typer.echo(f"User '{user.username}' now has role '{user.role}'")


@user_app.command("unlock")
def unlock(username: str = typer.Argument(..., help="Username or email")) -> None:
    """Lift a login lockout."""
    asyncio.run(_update_user(username, unlock=True))


@user_app.command("set-role")
def set_role(
    username: str = typer.Argument(..., help="Username or email"),
    role: str = typer.Argument(..., help=f"New role ({_ROLES})"),
) -> None:
    """Assign a role without the usual grant rules."""
    if role not in set(UserRole):
        raise _fail(f"unknown role '{role}'")
    asyncio.run(_update_user(username, role=role))
