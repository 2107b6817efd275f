"""
Admin commands: database setup and analysis cache maintenance.
"""

import click

from ...database.analysis_cache import AnalysisCache
from ..utils import get_database


@click.command('init')
def init():
    """
    Initialize the database.

    Example:
        python main.py init
    """
    try:
        db_manager = get_database()
        click.secho("✓ Database initialized successfully", fg='green')
        click.echo(f"Database location: {db_manager.database_url}")
    except Exception as e:
        click.secho(f"✗ Error initializing database: {e}", fg='red')
        raise click.Abort()


@click.group('cache')
def cache():
    """Inspect or clear the persisted analysis cache."""


@cache.command('stats')
def cache_stats():
    """Show analysis cache size."""
    stats = AnalysisCache(get_database()).stats()
    click.echo(f"Cached analyses: {stats['entries']}")
    if stats['oldest']:
        click.echo(f"Oldest entry: {stats['oldest']}")


@cache.command('clear')
@click.confirmation_option(prompt='Clear all cached analyses?')
def cache_clear():
    """Delete every cached analysis."""
    removed = AnalysisCache(get_database()).clear()
    click.secho(f"✓ Removed {removed} cached analyses", fg='green')
