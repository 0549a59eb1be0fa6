"""
pulse_hub: central collector for pulse agents

Validates incoming host snapshots, keeps a bounded per-host history and serves
it over HTTP, a dashboard and an admin CLI.
"""

from pulse_hub.models import Sample, MemoryUsage, StorageUsage
from pulse_hub.store import SampleStore

__all__ = ['Sample', 'MemoryUsage', 'StorageUsage', 'SampleStore']
__version__ = '1.0.0'
