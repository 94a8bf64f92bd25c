"""CLI tools for CRM administration."""

import click

from crm.core.logging_config import configure_logging
from crm.db.session import SessionLocal


@click.group()
def cli():
    """CRM CLI tools."""
    configure_logging()


@cli.command()
def init_db():
    """
    Create all database tables.

    Example:
        python -m crm.cli init-db
    """
    from crm.db import init_db as create_tables

    create_tables()
    click.echo("✅ Database tables created")


@cli.command()
def purge_sessions():
    """Delete every session past its expiry."""
    from crm.services import session_service

    db = SessionLocal()
    try:
        removed = session_service.purge_expired_sessions(db)
        click.echo(f"✅ Removed {removed} expired session(s)")
    finally:
        db.close()


@cli.command()
@click.argument("slug")
def seed_templates(slug: str):
    """
    Seed the default task templates for a workspace. Idempotent.

    Example:
        python -m crm.cli seed-templates acme
    """
    from crm.services import automation_service, workspace_service

    db = SessionLocal()
    try:
        workspace = workspace_service.get_workspace_by_slug(db, slug)
        if workspace is None:
            click.echo(f"❌ Workspace '{slug}' not found")
            raise SystemExit(1)
        created = automation_service.initialize_default_task_templates(db, workspace.id)
        db.commit()
        click.echo(f"✅ Created {created} template(s) for '{slug}'")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
