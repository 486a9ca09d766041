"""Flask CLI commands for teambooks."""

from __future__ import annotations

import click
from flask.cli import FlaskGroup

from .domain.roles import SYSTEM_ACTOR
from .errors import TeambooksError


def _session_factory():
    from .extensions import get_session_factory

    return get_session_factory()


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Create the schema (the app factory already did) and report the target."""

        config = app.config["TEAMBOOKS_CONFIG"]
        click.echo(f"Database ready: {config.DATABASE_URL}")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--superadmin", is_flag=True, default=False, help="Grant superadmin rights")
    def create_user_command(username: str, password: str, superadmin: bool) -> None:
        """Create a login account."""

        from .services.users import create_user

        try:
            user = create_user(
                username=username,
                password=password,
                superadmin=superadmin,
                session_factory=_session_factory(),
            )
        except TeambooksError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Created user {user.username} (id={user.id})")

    @app.cli.command("balance")
    @click.argument("account_id", type=int)
    @click.option("--as-of", "as_of", default=None, help="Cut-off date YYYY-MM-DD (default: today)")
    def balance_command(account_id: int, as_of: str | None) -> None:
        """Print the exercised and projected balance of an account."""

        from .services.balances import compute_balance

        try:
            balance = compute_balance(
                SYSTEM_ACTOR, account_id, as_of, session_factory=_session_factory()
            )
        except TeambooksError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"exercised={balance.exercised:.2f} projected={balance.projected:.2f}")

    @app.cli.command("purge")
    @click.argument("entity", type=click.Choice(["book", "team"], case_sensitive=False))
    @click.argument("entity_id", type=int)
    def purge_command(entity: str, entity_id: int) -> None:
        """Permanently delete a soft-deleted book or team."""

        from .services.lifecycle import permanent_delete

        try:
            permanent_delete(SYSTEM_ACTOR, entity, entity_id, session_factory=_session_factory())
        except TeambooksError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Purged {entity.lower()} {entity_id}")


def _create_app():
    from .web import create_app

    return create_app()


main = FlaskGroup(create_app=_create_app, help="Teambooks management commands.")
