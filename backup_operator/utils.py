import logging
from typing import Dict, Optional, Union

from kubernetes.utils import parse_quantity

from backup_operator.errors import ConfigurationError

# Plain loggers or the adapter kopf passes to handlers
Logger = Union[logging.Logger, logging.LoggerAdapter]


def merge_labels(*label_sets: Optional[Dict[str, str]]) -> Dict[str, str]:
    """
    Merge label maps left to right, later maps win on key conflicts
    """
    merged: Dict[str, str] = {}
    for labels in label_sets:
        if labels:
            merged.update(labels)
    return merged


def format_bool(value: bool) -> str:
    """Render a flag the way the backup daemon parses it"""
    return 'true' if value else 'false'


def validate_quantity(value: str, field_name: str) -> str:
    """
    Check that a storage size is a valid Kubernetes quantity

    Raises:
        ConfigurationError: If the value cannot be parsed
    """
    if not value:
        raise ConfigurationError(f"{field_name} is required")
    try:
        parse_quantity(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid quantity for {field_name}: {value!r} ({e})")
    return value
