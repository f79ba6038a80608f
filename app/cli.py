import click
from flask.cli import with_appcontext

from app.extensions import db
from app.services.errors import ServiceError
from app.services.identity import create_user
from app.services.seeds import import_questions, seed_brand_statuses


@click.group()
def users():
    """User management."""


@users.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", "display_name", default=None, help="Display name")
@with_appcontext
def users_create(email, password, display_name):
    try:
        user = create_user(db.session, email=email, password=password, display_name=display_name)
        db.session.commit()
    except ServiceError as e:
        db.session.rollback()
        detail = "; ".join(f"{k}: {v}" for k, v in e.errors.items()) or e.message
        raise click.ClickException(detail)

    click.echo(f"User created id={user.id} email={user.email}")


@click.group()
def seed():
    """Seed/reference data loaders."""


@seed.command("questions")
@click.option("--file", "path", required=True, type=click.Path(exists=True, dir_okay=False),
              help="CSV or XLSX with Categoria, Pergunta, Tipo[, Produto, Obrigatória, Ordem, Opções]")
@with_appcontext
def seed_questions(path):
    try:
        inserted, skipped = import_questions(db.session, path)
        db.session.commit()
    except (ServiceError, ValueError) as e:
        db.session.rollback()
        message = getattr(e, "message", None) or str(e)
        errors = getattr(e, "errors", None)
        if errors:
            message = f"{message}: " + "; ".join(f"{k}: {v}" for k, v in errors.items())
        raise click.ClickException(message)

    click.echo(f"Questions seeded: inserted={inserted} skipped={skipped}")


@seed.command("brand-statuses")
@with_appcontext
def seed_statuses():
    added = seed_brand_statuses(db.session)
    db.session.commit()
    click.echo(f"Brand statuses added: {added}")


def register_cli(app):
    app.cli.add_command(users)
    app.cli.add_command(seed)
