"""
Sample model shared by validation, storage and the read APIs.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

COLUMNS = (
    'server_name',
    'timestamp',
    'temperature',
    'memory_used',
    'memory_total',
    'memory_percentage',
    'storage_used',
    'storage_total',
    'storage_percentage',
    'cpu_percentage',
)


@dataclass(frozen=True)
class MemoryUsage:
    """RAM usage in MB"""
    used: float
    total: float
    percentage: float


@dataclass(frozen=True)
class StorageUsage:
    """Root filesystem usage, sizes kept as the agent formatted them ("10G")"""
    used: str
    total: str
    percentage: int


@dataclass(frozen=True)
class Sample:
    """One snapshot reported by an agent. Immutable once stored."""
    server_name: str
    timestamp: int
    temperature: float
    memory: MemoryUsage
    storage: StorageUsage
    cpu: float
    id: Optional[int] = None
    created_at: Optional[Any] = None

    def to_row_params(self) -> Tuple:
        """Values in COLUMNS order"""
        return (
            self.server_name,
            self.timestamp,
            self.temperature,
            self.memory.used,
            self.memory.total,
            self.memory.percentage,
            self.storage.used,
            self.storage.total,
            self.storage.percentage,
            self.cpu,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Sample':
        return cls(
            server_name=row['server_name'],
            timestamp=row['timestamp'],
            temperature=row['temperature'],
            memory=MemoryUsage(
                used=row['memory_used'],
                total=row['memory_total'],
                percentage=row['memory_percentage'],
            ),
            storage=StorageUsage(
                used=row['storage_used'],
                total=row['storage_total'],
                percentage=row['storage_percentage'],
            ),
            cpu=row['cpu_percentage'],
            id=row.get('id'),
            created_at=row.get('created_at'),
        )

    def to_row(self) -> Dict[str, Any]:
        """Flat column layout, as stored"""
        row = {'id': self.id}
        row.update(zip(COLUMNS, self.to_row_params()))
        row['created_at'] = self.created_at
        return row
