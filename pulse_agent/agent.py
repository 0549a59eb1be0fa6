#!/usr/bin/env python3
"""
Agent daemon - collect a snapshot, push it to the hub, sleep, repeat.
"""

import logging
import signal
import sys
import time
from typing import Optional

import click

from pulse_agent.collectors import SystemMetrics
from pulse_agent.config import ConfigError, load_config
from pulse_agent.transport import HttpSender, TransportError
from pulselog import setup_logging

logger = logging.getLogger(__name__)


class MonitoringAgent:
    """Sequential collect/send loop for one host"""

    def __init__(
        self,
        server_name: str,
        collector: SystemMetrics,
        sender: HttpSender,
        interval: int = 30,
        sleep=time.sleep
    ):
        self.server_name = server_name
        self.collector = collector
        self.sender = sender
        self.interval = interval
        self.running = False
        self._sleep = sleep

    def _handle_shutdown(self, signum, frame):
        """Stop after the current cycle"""
        logger.info("Shutdown signal received", extra={'context': {'signal': signum}})
        self.running = False

    def install_signal_handlers(self):
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def run(self):
        """Main daemon loop; a failed cycle is logged and its snapshot dropped"""
        self.running = True
        click.echo(f"Starting monitoring for {self.server_name}")
        click.echo(f"Sending snapshots to {self.sender.manager_url} every {self.interval}s")

        try:
            while self.running:
                try:
                    self.run_once()
                except TransportError as e:
                    logger.error(
                        "Snapshot not delivered",
                        extra={'context': {'error': str(e), 'status_code': e.status_code}}
                    )
                except Exception:
                    logger.exception("Error in collection cycle")

                if self.running:
                    self._sleep(self.interval)
        finally:
            self._cleanup()

    def run_once(self) -> dict:
        """Single collection cycle"""
        snapshot = self.collector.collect()
        payload = snapshot.to_payload()
        self.sender.send(payload)

        logger.info("Snapshot sent", extra={'context': payload})
        return payload

    def _cleanup(self):
        self.sender.close()
        click.echo("Agent stopped")


@click.command()
@click.argument('manager_url', required=False)
@click.option('--config', type=click.Path(exists=True, dir_okay=False), default=None, help='Path to config.yml')
@click.option('--server-name', default=None, help='Name reported to the hub (default: hostname)')
@click.option('--interval', type=click.IntRange(min=1), default=None, help='Seconds between snapshots (default: 30)')
def main(manager_url: Optional[str], config: Optional[str], server_name: Optional[str], interval: Optional[int]):
    """Run the agent, pushing snapshots to MANAGER_URL

    Example: pulse-agent http://192.168.1.100:4777/metrics
    """
    setup_logging(names=('pulse_agent',))

    try:
        agent_config = load_config(config, manager_url, server_name, interval)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Usage: pulse-agent <manager_url>", err=True)
        sys.exit(1)

    agent = MonitoringAgent(
        server_name=agent_config.server_name,
        collector=SystemMetrics(agent_config.server_name),
        sender=HttpSender(agent_config.manager_url, timeout=agent_config.timeout),
        interval=agent_config.interval
    )
    agent.install_signal_handlers()
    agent.run()


if __name__ == '__main__':
    main()
