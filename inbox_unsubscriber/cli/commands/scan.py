"""
Scan command: find junk senders in the inbox.
"""

import asyncio
import json

import click

from ...email_processor.progress import ScanProgressTracker, ScanStatus
from ...exceptions import NotAuthenticatedError
from ..utils import build_scanner, get_database

POLL_INTERVAL = 0.5


async def _run_with_progress(scanner, tracker: ScanProgressTracker, quiet: bool):
    """Run the scan while echoing progress changes from the tracker."""
    task = asyncio.create_task(scanner.scan(tracker))
    last_line = None
    while not task.done():
        await asyncio.sleep(POLL_INTERVAL)
        snapshot = tracker.latest()
        line = f"  [{snapshot.status.value}] {snapshot.processed}/{snapshot.total} processed"
        if snapshot.status == ScanStatus.AI_ANALYSIS and snapshot.total_batches:
            line += f", batch {snapshot.current_batch}/{snapshot.total_batches}"
        elif snapshot.status == ScanStatus.EXPANDING:
            line += f", domains {snapshot.expanding_domains}/{snapshot.total_domains}"
        if not quiet and line != last_line:
            click.echo(line)
            last_line = line
    return await task


@click.command('scan')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.option('--min-count', type=int, default=1, help='Only show senders with at least this many emails')
def scan(as_json, min_count):
    """
    Scan the inbox and report junk senders.

    Runs discovery queries, classifies new messages, expands junk
    senders to all their inbox mail and groups the result by domain.

    Example:
        python main.py scan
        python main.py scan --min-count 5
    """
    scanner = build_scanner(get_database())
    tracker = ScanProgressTracker()

    if not as_json:
        click.echo("\nScanning inbox...")
    try:
        report = asyncio.run(_run_with_progress(scanner, tracker, quiet=as_json))
    except NotAuthenticatedError:
        click.secho("✗ Not authenticated. Provide a Gmail token file (GMAIL_TOKEN_PATH).", fg='red')
        raise click.Abort()
    except Exception as e:
        click.secho(f"✗ Scan failed: {e}", fg='red')
        raise click.Abort()

    groups = [g for g in report.groups if g.count >= min_count]

    if as_json:
        data = report.to_dict()
        data['groups'] = [g.to_dict() for g in groups]
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(
        f"✓ Scan complete: {report.junk_messages} junk of {report.processed} processed "
        f"({report.total} found), {report.expanded_messages} more from expansion",
        fg='green'
    )
    if not groups:
        click.echo("\nNo junk senders found")
        return

    click.echo(f"\nJunk senders: {len(groups)}")
    click.echo("=" * 80)
    for group in groups:
        marker = " [unsubscribe available]" if group.has_unsubscribe else ""
        click.echo(f"\n  {group.sender_name} <{group.domain}>{marker}")
        click.echo(f"  Emails: {group.count}  Confidence: {group.average_confidence}%")
    click.echo("\n" + "=" * 80)
    stats = report.stats
    click.echo(
        f"Cache hits: {stats['cache_hits']}  Preprocessed: {stats['preprocessed']}  "
        f"AI calls: {stats['total_ai_calls']}  Time: {stats['processing_time']}s"
    )
    classifier = stats.get('classifier')
    if classifier:
        click.echo(f"Classifier: {classifier['provider']}  Fallbacks: {classifier['fallbacks']}")
    if stats.get('failed_domains'):
        click.echo(f"Expansion failed for: {', '.join(stats['failed_domains'])}")
