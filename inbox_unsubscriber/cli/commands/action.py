"""
Action commands: unsubscribe from a sender and archive its mail.
"""

import asyncio

import click

from ..utils import build_scanner, get_database, parse_message_ids


@click.command('unsubscribe')
@click.option('--domain', required=True, help='Sender domain to unsubscribe from')
@click.option('--ids', required=True, help='Comma-separated message IDs from that sender')
@click.option('--dry-run', is_flag=True, help='Report what would be requested and archived without doing it')
def unsubscribe(domain, ids, dry_run):
    """
    Unsubscribe from a sender and archive the given messages.

    The first message is used to find the unsubscribe method. Every
    listed message is archived whether or not unsubscribing worked.

    Example:
        python main.py unsubscribe --domain news.example.com --ids 18c1,18c2
    """
    message_ids = parse_message_ids(ids)
    if not message_ids:
        click.secho("✗ Error: No message IDs provided", fg='red')
        raise click.Abort()

    scanner = build_scanner(get_database(), dry_run=dry_run)
    click.echo(f"\nUnsubscribing from {domain} ({len(message_ids)} emails)...")
    result = asyncio.run(scanner.bulk_unsubscribe(domain, message_ids))

    if result.dry_run:
        click.secho("DRY RUN: nothing was sent or archived", fg='yellow')

    if result.method != 'archive-only':
        verb = "Would unsubscribe" if result.dry_run else "✓ Unsubscribed"
        click.secho(f"{verb} via {result.method}", fg='green')
    else:
        click.secho("! Automatic unsubscribe not possible", fg='yellow')

    if result.details:
        click.echo(f"  {result.details}")

    if result.dry_run:
        click.echo(f"  Would archive {len(result.would_archive)} emails: {', '.join(result.would_archive)}")
        return

    if result.archived:
        click.secho(f"✓ Archived {result.archived_count} of {result.email_count} emails", fg='green')
    else:
        click.secho("✗ Archiving failed", fg='red')

    if not result.success:
        raise click.Abort()
