"""
Error taxonomy for the collector.
"""

from typing import List


class PulseError(Exception):
    """Base class for collector errors"""
    pass


class ParseError(PulseError):
    """Request body is not a JSON object"""

    def __init__(self, message: str = 'JSON invalide'):
        super().__init__(message)


class ValidationError(PulseError):
    """Snapshot is valid JSON but lacks required fields"""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Champs manquants: {', '.join(self.missing)}")


class StorageError(PulseError):
    """Database operation failed"""
    pass


class ConfigError(PulseError):
    """Configuration validation error"""
    pass
