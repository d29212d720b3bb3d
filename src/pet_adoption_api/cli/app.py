"""``pet-adoption-api`` command line: the server plus db, user and adoptions groups."""

import typer

from pet_adoption_api.cli.adoptions_cmd import adoptions_app
from pet_adoption_api.cli.db_cmd import db_app
from pet_adoption_api.cli.user_cmd import user_app
from pet_adoption_api.core.config import get_settings
from pet_adoption_api.core.logging import setup_logging

app = typer.Typer(name="pet-adoption-api", help="Pet adoption backend CLI")
app.add_typer(db_app, name="db", help="Schema migrations")
app.add_typer(user_app, name="user", help="Accounts and roles")
app.add_typer(adoptions_app, name="adoptions", help="Adoption request housekeeping")


@app.callback()
def main() -> None:
    """Configure logging before any subcommand runs."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
    workers: int = typer.Option(1, "--workers", min=1, help="Worker processes (ignored with --reload)"),
) -> None:
    """Run the API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "pet_adoption_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else workers,
    )
