"""
pulselog: structured JSON logging shared by the pulse agent and hub

Every record is a single JSON object so the hub's and agents' output can be
shipped to the same log pipeline.
"""

from pulselog.logger import JSONFormatter, get_logger, setup_logging

__all__ = ['JSONFormatter', 'get_logger', 'setup_logging']
__version__ = '1.0.0'
