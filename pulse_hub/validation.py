"""
Ingestion validation: turn a raw POST /metrics body into a Sample.
"""

import json
from typing import Any, Dict, List, Union

from pulse_hub.errors import ParseError, ValidationError
from pulse_hub.models import MemoryUsage, Sample, StorageUsage

REQUIRED_FIELDS = ('server_name', 'timestamp', 'temperature', 'memory', 'storage', 'cpu')
NESTED_FIELDS = {
    'memory': ('used', 'total', 'percentage'),
    'storage': ('used', 'total', 'percentage'),
}


def parse_payload(body: Union[bytes, str]) -> Dict[str, Any]:
    """
    Decode a request body.

    Raises:
        ParseError: body is not JSON, or not a JSON object
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        raise ParseError()

    if not isinstance(data, dict):
        raise ParseError()

    return data


def missing_fields(payload: Dict[str, Any]) -> List[str]:
    """Every absent field, nested ones as 'memory.used'"""
    missing = [field for field in REQUIRED_FIELDS if field not in payload]

    for parent, children in NESTED_FIELDS.items():
        if parent not in payload:
            continue
        section = payload[parent]
        if not isinstance(section, dict):
            section = {}
        missing.extend(f"{parent}.{child}" for child in children if child not in section)

    return missing


def validate(payload: Dict[str, Any]) -> Sample:
    """
    Check the snapshot shape and build a Sample from it.

    Values are kept exactly as received.

    Raises:
        ValidationError: listing every missing field
    """
    missing = missing_fields(payload)
    if missing:
        raise ValidationError(missing)

    memory = payload['memory']
    storage = payload['storage']

    return Sample(
        server_name=payload['server_name'],
        timestamp=payload['timestamp'],
        temperature=payload['temperature'],
        memory=MemoryUsage(
            used=memory['used'],
            total=memory['total'],
            percentage=memory['percentage'],
        ),
        storage=StorageUsage(
            used=storage['used'],
            total=storage['total'],
            percentage=storage['percentage'],
        ),
        cpu=payload['cpu'],
    )


def parse_sample(body: Union[bytes, str]) -> Sample:
    return validate(parse_payload(body))
