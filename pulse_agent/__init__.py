"""
pulse_agent: per-host monitoring agent

Samples CPU, memory, storage and temperature and pushes a snapshot to the
pulse hub every 30 seconds.
"""

from pulse_agent.agent import MonitoringAgent
from pulse_agent.collectors import SystemMetrics, Snapshot
from pulse_agent.transport import HttpSender

__all__ = ['MonitoringAgent', 'SystemMetrics', 'Snapshot', 'HttpSender']
__version__ = '1.0.0'
