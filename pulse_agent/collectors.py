"""
Collectors for the host snapshot: temperature, memory, storage and CPU.

Each reading is best effort. A failing reading is logged and replaced by
its zero default so a collection cycle always yields a snapshot.
"""

import logging
import math
import re
import subprocess
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

MB = 1024 * 1024

THERMAL_ZONES = (
    '/sys/class/thermal/thermal_zone0/temp',
    '/sys/class/thermal/thermal_zone1/temp',
    '/sys/class/thermal/thermal_zone2/temp',
)

# Zones reading above this are most likely not the CPU
MAX_ZONE_CELSIUS = 80.0

PACKAGE_RE = re.compile(r'Package id \d+:\s*\+?(\d+\.?\d*)°C')
CORE_RE = re.compile(r'Core \d+:\s*\+?(\d+\.?\d*)°C')


class CollectionError(Exception):
    """A sensor or /proc reading could not be taken"""
    pass


@dataclass
class MemoryReading:
    used: float = 0.0
    total: float = 0.0
    percentage: float = 0.0


@dataclass
class StorageReading:
    used: str = '0'
    total: str = '0'
    percentage: int = 0


@dataclass
class Snapshot:
    """One host snapshot, as sent to the hub"""
    server_name: str
    timestamp: int
    temperature: float = 0.0
    memory: MemoryReading = field(default_factory=MemoryReading)
    storage: StorageReading = field(default_factory=StorageReading)
    cpu: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        return {
            'server_name': self.server_name,
            'timestamp': self.timestamp,
            'temperature': self.temperature,
            'memory': {
                'used': self.memory.used,
                'total': self.memory.total,
                'percentage': self.memory.percentage,
            },
            'storage': {
                'used': self.storage.used,
                'total': self.storage.total,
                'percentage': self.storage.percentage,
            },
            'cpu': self.cpu,
        }


def human_size(num_bytes: float) -> str:
    """Size in the style of `df -h` (rounded up): 512K, 9.8G, 20G"""
    value = float(num_bytes)
    for unit in ('B', 'K', 'M', 'G', 'T', 'P'):
        if value < 1024 or unit == 'P':
            break
        value /= 1024

    if unit == 'B':
        return f"{int(value)}B"

    tenths = math.ceil(value * 10) / 10
    if tenths < 10:
        return f"{tenths:.1f}{unit}"
    return f"{math.ceil(value)}{unit}"


class SensorsCommandSource:
    """CPU temperature from the lm-sensors `sensors` command"""

    def __init__(self, command: Sequence[str] = ('sensors',), timeout: float = 5):
        self.command = list(command)
        self.timeout = timeout

    def read(self) -> Optional[float]:
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise CollectionError(f"sensors unavailable: {e}") from e

        return self.parse(result.stdout)

    @staticmethod
    def parse(output: str) -> Optional[float]:
        """Package temperature if listed, else the first coretemp core"""
        if not output:
            return None

        match = PACKAGE_RE.search(output)
        if match:
            return float(match.group(1))

        in_coretemp = False
        for line in output.splitlines():
            if 'coretemp' in line:
                in_coretemp = True
                continue
            if in_coretemp:
                match = CORE_RE.search(line)
                if match:
                    return float(match.group(1))

        return None


class ThermalZoneSource:
    """CPU temperature from /sys/class/thermal (millidegrees)"""

    def __init__(self, paths: Sequence[str] = THERMAL_ZONES):
        self.paths = list(paths)

    def read(self) -> Optional[float]:
        for path in self.paths:
            try:
                with open(path) as f:
                    raw = int(f.read().strip())
            except (OSError, ValueError):
                continue

            if raw > 0:
                celsius = raw / 1000.0
                if celsius < MAX_ZONE_CELSIUS:
                    return celsius

        return None


def default_temperature_sources() -> List:
    return [SensorsCommandSource(), ThermalZoneSource()]


def read_temperature(sources) -> float:
    """First reading any source returns, in priority order; 0.0 when none does"""
    for source in sources:
        try:
            value = source.read()
        except CollectionError as e:
            logger.debug("Temperature source failed", extra={'context': {'source': type(source).__name__, 'error': str(e)}})
            continue
        if value is not None:
            return value
    return 0.0


class SystemMetrics:
    """Collects a host snapshot using psutil"""

    def __init__(
        self,
        server_name: str,
        temperature_sources: Optional[list] = None,
        disk_path: str = '/',
        cpu_interval: float = 1.0,
        clock: Callable[[], float] = time.time
    ):
        self.server_name = server_name
        self.temperature_sources = (
            default_temperature_sources() if temperature_sources is None else temperature_sources
        )
        self.disk_path = disk_path
        self.cpu_interval = cpu_interval
        self.clock = clock

    def collect(self) -> Snapshot:
        """Take one snapshot. Never raises for a failed reading."""
        return Snapshot(
            server_name=self.server_name,
            timestamp=int(self.clock()),
            temperature=self._reading('temperature', self.temperature, 0.0),
            memory=self._reading('memory', self.memory, MemoryReading()),
            storage=self._reading('storage', self.storage, StorageReading()),
            cpu=self._reading('cpu', self.cpu, 0.0),
        )

    def _reading(self, name: str, read: Callable, default):
        try:
            return read()
        except Exception as e:
            logger.warning(
                "Reading failed, using default",
                extra={'context': {'metric': name, 'error': str(e)}}
            )
            return default

    def temperature(self) -> float:
        return read_temperature(self.temperature_sources)

    def memory(self) -> MemoryReading:
        """RAM in MB, buffers and page cache counted as free"""
        try:
            mem = psutil.virtual_memory()
        except (OSError, RuntimeError) as e:
            raise CollectionError(f"memory unavailable: {e}") from e

        total = mem.total
        if not total:
            raise CollectionError("total memory reported as 0")

        used = total - mem.free - getattr(mem, 'buffers', 0) - getattr(mem, 'cached', 0)
        return MemoryReading(
            used=round(used / MB, 2),
            total=round(total / MB, 2),
            percentage=round(used / total * 100, 2),
        )

    def storage(self) -> StorageReading:
        try:
            disk = psutil.disk_usage(self.disk_path)
        except OSError as e:
            raise CollectionError(f"disk usage unavailable for {self.disk_path}: {e}") from e

        return StorageReading(
            used=human_size(disk.used),
            total=human_size(disk.total),
            percentage=int(math.ceil(disk.percent)),
        )

    def cpu(self) -> float:
        """Busy percentage over cpu_interval seconds (blocks for that long)"""
        try:
            return round(psutil.cpu_percent(interval=self.cpu_interval), 2)
        except (OSError, RuntimeError) as e:
            raise CollectionError(f"cpu usage unavailable: {e}") from e
