import click

from certhub.auth import register_user
from certhub.errors import CertHubError
from certhub.models import ROLE_ISSUER, ROLES, db


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create database tables."""
        db.create_all()
        click.echo("database initialised")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.password_option()
    @click.option("--role", type=click.Choice(ROLES), default=ROLE_ISSUER, show_default=True)
    @click.option("--organization", default=None)
    def create_user(username, password, role, organization):
        """Create a user; the only way to create an admin."""
        try:
            user = register_user(
                {"username": username, "password": password, "organization": organization},
                role=role,
            )
        except CertHubError as exc:
            raise click.ClickException(exc.message)
        click.echo(f"created {user.role} {user.username}")
