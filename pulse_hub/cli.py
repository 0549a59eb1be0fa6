"""
pulse-hub command line: admin commands, or the collector service when no
action flag is given.
"""
import sys
from datetime import datetime
from typing import Optional

import click

from pulse_hub import admin
from pulse_hub.api import run_server
from pulse_hub.config import HubConfig, load_config
from pulse_hub.db import get_database
from pulse_hub.errors import PulseError
from pulse_hub.retention import RetentionPolicy
from pulse_hub.status import HostStatus
from pulse_hub.store import SampleStore
from pulselog import setup_logging

STATUS_LABELS = {
    HostStatus.ONLINE: ('ONLINE', 'green'),
    HostStatus.OFFLINE: ('OFFLINE', 'red'),
}


def _open_store(config: HubConfig) -> SampleStore:
    return SampleStore(
        get_database(config.db_url),
        retention=RetentionPolicy(config.retention_seconds)
    )


def _when(timestamp) -> str:
    try:
        return datetime.fromtimestamp(timestamp).strftime('%Y-%m-%d %H:%M:%S')
    except (TypeError, ValueError, OverflowError, OSError):
        return str(timestamp)


def _num(value, width: int, precision: int = 1) -> str:
    """Left-aligned number, or the raw value when it is not numeric"""
    try:
        return f"{float(value):<{width}.{precision}f}"
    except (TypeError, ValueError):
        return f"{str(value):<{width}}"


def show_hosts(store: SampleStore) -> None:
    hosts = admin.list_hosts(store)

    click.echo("\n=== SERVERS ===")
    click.echo(f"{'Name':<20} {'Status':<10} {'Last seen':<15} {'CPU %':<10} {'RAM %':<10} {'Storage %':<10}")
    click.echo("-" * 85)

    if not hosts:
        click.echo("No server found.")

    for host in hosts:
        label, color = STATUS_LABELS[host.status]
        sample = host.sample
        click.echo(
            f"{sample.server_name:<20} "
            f"{click.style(f'{label:<10}', fg=color)} "
            f"{host.last_seen_human:<15} "
            f"{_num(sample.cpu, 10)} "
            f"{_num(sample.memory.percentage, 10)} "
            f"{_num(sample.storage.percentage, 10, 0)}"
        )

    online = sum(1 for host in hosts if host.online)
    click.echo(f"\nTotal: {len(hosts)} server(s)")
    click.echo(f"Online: {online}")
    click.echo(f"Offline: {len(hosts) - online}")


def clean_host(store: SampleStore, server_name: str) -> bool:
    detail = admin.host_detail(store, server_name)
    if detail is None:
        click.secho(f"Error: server '{server_name}' not found.", fg='red', err=True)
        return False

    click.echo("\n=== SERVER ===")
    click.echo(f"Name: {detail['server_name']}")
    click.echo(f"Records: {detail['records']}")
    click.echo(f"First record: {_when(detail['first_seen'])}")
    click.echo(f"Last record: {_when(detail['last_seen'])}")

    if not click.confirm("\nDelete this server and all of its data?", default=False):
        click.secho("Deletion cancelled.", fg='yellow')
        return True

    deleted = admin.remove_host(store, server_name)
    click.secho(f"✓ Server '{server_name}' deleted ({deleted} records removed).", fg='green')
    return True


def cleanup_inactive(store: SampleStore, hours: int) -> None:
    inactive = admin.find_inactive(store, hours)

    if not inactive:
        click.secho(f"No inactive server found (threshold: {hours}h).", fg='green')
        return

    click.echo(f"\n=== INACTIVE SERVERS (more than {hours}h) ===")
    for server_name, last_seen in inactive:
        click.echo(f"- {server_name} (last seen: {_when(last_seen)})")

    if not click.confirm(f"\nDelete these {len(inactive)} server(s)?", default=False):
        click.secho("Deletion cancelled.", fg='yellow')
        return

    names = [server_name for server_name, _ in inactive]
    deleted = admin.remove_hosts(store, names)
    click.secho(f"✓ {len(names)} server(s) deleted ({deleted} records removed).", fg='green')
    click.echo("Deleted servers:")
    for name in names:
        click.echo(f"  - {name}")


def show_stats(store: SampleStore) -> None:
    stats = admin.database_stats(store)

    click.echo("\n=== DATABASE STATISTICS ===")
    click.echo(f"Total records: {stats['total_records']}")
    click.echo(f"Servers: {stats['distinct_hosts']}")
    click.echo(f"Database size: {stats['storage_size_mb']} MB")

    if stats['span_days'] is not None:
        click.echo(f"Data period: {_when(stats['min_timestamp'])} to {_when(stats['max_timestamp'])}")
        click.echo(f"Span: {stats['span_days']} days")


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.option('-l', '--list', 'list_hosts', is_flag=True, help='List servers with their status')
@click.option('-c', '--clean', 'clean', metavar='SERVER', default=None, help='Delete one server and all its data')
@click.option('-C', '--cleanup', 'cleanup_hours', type=click.IntRange(min=0), is_flag=False,
              flag_value=24, default=None, metavar='[HOURS]',
              help='Delete servers inactive for HOURS (default: 24)')
@click.option('-s', '--stats', is_flag=True, help='Show database statistics')
@click.option('--config', type=click.Path(exists=True, dir_okay=False), default=None, help='Path to config.yml')
@click.option('--host', default=None, help='Host to bind the service to')
@click.option('--port', type=int, default=None, help='Port to bind the service to')
def main(list_hosts: bool, clean: Optional[str], cleanup_hours: Optional[int], stats: bool,
         config: Optional[str], host: Optional[str], port: Optional[int]):
    """Pulse Hub: collect host metrics, or administer the stored data.

    Without an action flag the collector service is started.
    """
    setup_logging(names=('pulse_hub',))

    try:
        hub_config = load_config(config)
    except PulseError as e:
        raise click.ClickException(str(e))

    if host:
        hub_config.host = host
    if port:
        hub_config.port = port

    if not (list_hosts or clean or cleanup_hours is not None or stats):
        click.echo(f"Starting Pulse Hub on http://{hub_config.host}:{hub_config.port}")
        click.echo("Run with -h to see the admin commands")
        run_server(hub_config)
        return

    try:
        store = _open_store(hub_config)
        try:
            if list_hosts:
                show_hosts(store)
            elif clean:
                if not clean_host(store, clean):
                    sys.exit(1)
            elif cleanup_hours is not None:
                cleanup_inactive(store, cleanup_hours)
            else:
                show_stats(store)
        finally:
            store.close()
    except PulseError as e:
        raise click.ClickException(str(e))


if __name__ == '__main__':
    main()
