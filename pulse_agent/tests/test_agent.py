"""
Unit tests for the agent loop and its command line.
"""

from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from pulse_agent.agent import MonitoringAgent, main
from pulse_agent.collectors import Snapshot
from pulse_agent.transport import TransportError


def make_agent(collector=None, sender=None, cycles=1):
    """Agent whose sleep stops the loop after `cycles` iterations"""
    collector = collector or Mock()
    if not isinstance(collector.collect.return_value, Snapshot):
        collector.collect.return_value = Snapshot(server_name='test-host', timestamp=1000)
    sender = sender or Mock(manager_url='http://collector.test/metrics')

    sleep = Mock()
    agent = MonitoringAgent('test-host', collector, sender, interval=30, sleep=sleep)

    def stop_after(seconds):
        if sleep.call_count >= cycles:
            agent.running = False

    sleep.side_effect = stop_after
    return agent, collector, sender, sleep


class TestMonitoringAgent:
    """Test MonitoringAgent"""

    def test_run_once_sends_collected_payload(self):
        agent, collector, sender, _ = make_agent()

        payload = agent.run_once()

        assert payload['server_name'] == 'test-host'
        sender.send.assert_called_once_with(payload)

    def test_loop_sleeps_interval_between_cycles(self):
        agent, collector, sender, sleep = make_agent(cycles=3)

        agent.run()

        assert collector.collect.call_count == 3
        assert sender.send.call_count == 3
        sleep.assert_called_with(30)
        sender.close.assert_called_once()

    def test_transport_errors_do_not_stop_loop(self):
        sender = Mock(manager_url='http://collector.test/metrics')
        sender.send.side_effect = TransportError('HTTP error: 500', status_code=500)
        agent, collector, sender, sleep = make_agent(sender=sender, cycles=2)

        agent.run()

        assert sender.send.call_count == 2
        assert sleep.call_count == 2

    def test_unexpected_errors_do_not_stop_loop(self):
        collector = Mock()
        collector.collect.side_effect = [RuntimeError('boom'), Snapshot(server_name='test-host', timestamp=1)]
        agent, collector, sender, sleep = make_agent(collector=collector, cycles=2)

        agent.run()

        assert collector.collect.call_count == 2
        assert sender.send.call_count == 1

    def test_shutdown_signal_stops_loop(self):
        agent, collector, sender, sleep = make_agent(cycles=100)
        sender.send.side_effect = lambda payload: agent._handle_shutdown(15, None)

        agent.run()

        assert collector.collect.call_count == 1
        sleep.assert_not_called()


class TestMain:
    """Test the pulse-agent command"""

    @pytest.fixture(autouse=True)
    def no_logging_setup(self, monkeypatch):
        monkeypatch.setattr('pulse_agent.agent.setup_logging', lambda **kwargs: None)

    def test_requires_manager_url(self):
        result = CliRunner().invoke(main, [])

        assert result.exit_code == 1
        assert 'manager_url is required' in result.output

    def test_starts_agent(self):
        with patch('pulse_agent.agent.MonitoringAgent') as agent_class:
            result = CliRunner().invoke(main, [
                'http://collector.test:4777/metrics', '--server-name', 'web-1', '--interval', '5'
            ])

        assert result.exit_code == 0
        kwargs = agent_class.call_args.kwargs
        assert kwargs['server_name'] == 'web-1'
        assert kwargs['interval'] == 5
        assert kwargs['sender'].manager_url == 'http://collector.test:4777/metrics'
        agent_class.return_value.install_signal_handlers.assert_called_once()
        agent_class.return_value.run.assert_called_once()
