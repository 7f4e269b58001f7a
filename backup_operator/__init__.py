"""
Postgres Backup Operator manifest builder

Renders the Deployments, PersistentVolumeClaims and ConfigMaps of the
Postgres backup daemon and the metrics collector from the spec of the
operator's custom resource. The kopf reconciliation driver submits the
returned manifests to the cluster.
"""

__version__ = "0.1.0"

# Import main components for easier access
from backup_operator.config import OperatorConfig
from backup_operator.credentials import secret_names
from backup_operator.errors import ConfigurationError
from backup_operator.spec import (
    BackupDaemonSpec,
    MetricCollectorSpec,
    OperatorSpec,
    StorageSpec,
)
from backup_operator.storage import load_config_map, resolve_claim
from backup_operator.templates import ManifestTemplates, render_manifests

__all__ = [
    'OperatorConfig',
    'ConfigurationError',
    'BackupDaemonSpec',
    'MetricCollectorSpec',
    'OperatorSpec',
    'StorageSpec',
    'ManifestTemplates',
    'render_manifests',
    'resolve_claim',
    'load_config_map',
    'secret_names',
]
