"""
Persistent storage claims and file-backed config maps
"""

import logging
from typing import Any, Dict, List, Optional

from backup_operator.errors import ConfigurationError
from backup_operator.spec import AccessMode, ExternalPv, StorageSpec, StorageType
from backup_operator.utils import Logger, validate_quantity

LOG = logging.getLogger(__name__)

EXTERNAL_PVC_NAME = 'external-postgres-backup-pvc'


def parse_access_modes(access_modes: List[str], logger: Optional[Logger] = None) -> List[str]:
    """
    Keep the recognised access modes in their original order, without duplicates

    Unknown modes are skipped with a warning. Falls back to ReadWriteOnce
    when nothing usable is configured.
    """
    logger = logger or LOG
    result: List[str] = []
    for mode in access_modes:
        try:
            parsed = AccessMode(mode).value
        except ValueError:
            logger.warning(f"Skipping unknown AccessMode: {mode}")
            continue
        if parsed not in result:
            result.append(parsed)

    if not result:
        return [AccessMode.READ_WRITE_ONCE.value]
    return result


def parse_selector(selector: str) -> Dict[str, str]:
    """
    Parse a single 'key=value' selector entry

    Raises:
        ConfigurationError: If the entry is not exactly one key=value pair
    """
    parts = selector.split('=')
    if len(parts) != 2 or not parts[0].strip():
        raise ConfigurationError(
            f"Invalid storage selector {selector!r}: expected a single key=value pair"
        )
    key, value = parts
    return {key.strip(): value.strip()}


def resolve_claim(
    claim_name: str,
    storage: StorageSpec,
    replica_index: int,
    logger: Optional[Logger] = None
) -> Optional[Dict[str, Any]]:
    """
    Build the PersistentVolumeClaim spec for one replica of the storage set

    Args:
        claim_name: Name of the claim, used in diagnostics
        storage: Storage settings from the custom resource
        replica_index: 1-based ordinal of the replica the claim belongs to
        logger: Logger to report diagnostics to

    Returns:
        The claim spec, or None when the storage type is not persistent and
        the pod should use an emptyDir volume instead.

    Raises:
        ConfigurationError: If the storage settings cannot produce a claim
    """
    logger = logger or LOG

    if not storage.type.is_persistent:
        return None

    if replica_index < 1:
        raise ConfigurationError(
            f"Replica index for PVC {claim_name} must be at least 1, got {replica_index}"
        )

    spec: Dict[str, Any] = {
        'accessModes': parse_access_modes(storage.access_modes, logger),
        'resources': {
            'requests': {
                'storage': validate_quantity(storage.size, 'storage.size')
            }
        }
    }

    if storage.type == StorageType.PROVISIONED:
        logger.debug(f"PVC {claim_name} is provisioned with storage class "
                     f"{storage.storage_class or '<cluster default>'}")
        if storage.storage_class:
            spec['storageClassName'] = storage.storage_class
        return spec

    # Static binding: an empty class keeps dynamic provisioning out of the way
    spec['storageClassName'] = storage.storage_class or ''

    if storage.selectors:
        if replica_index > len(storage.selectors):
            raise ConfigurationError(
                f"PVC {claim_name} needs storage selector #{replica_index}, "
                f"but only {len(storage.selectors)} configured"
            )
        spec['selector'] = {
            'matchLabels': parse_selector(storage.selectors[replica_index - 1])
        }
    elif len(storage.volumes) >= replica_index:
        spec['volumeName'] = storage.volumes[replica_index - 1]
    else:
        logger.warning(f"The volume for PVC {claim_name} is not specified, "
                       f"the claim stays unbound until a volume is provided")

    return spec


def pvc_manifest(
    claim_name: str,
    namespace: str,
    storage: StorageSpec,
    replica_index: int,
    labels: Optional[Dict[str, str]] = None,
    logger: Optional[Logger] = None
) -> Optional[Dict[str, Any]]:
    """
    Generate a PersistentVolumeClaim manifest, None for non-persistent storage
    """
    spec = resolve_claim(claim_name, storage, replica_index, logger)
    if spec is None:
        return None

    metadata: Dict[str, Any] = {
        'name': claim_name,
        'namespace': namespace,
    }
    if labels:
        metadata['labels'] = dict(labels)

    return {
        'apiVersion': 'v1',
        'kind': 'PersistentVolumeClaim',
        'metadata': metadata,
        'spec': spec
    }


def external_pvc_manifest(
    external_pv: ExternalPv,
    namespace: str,
    labels: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Generate the claim binding the external backup volume

    Raises:
        ConfigurationError: If the volume name or capacity is missing
    """
    if not external_pv.name:
        raise ConfigurationError("externalPv.name is required")

    spec: Dict[str, Any] = {
        'accessModes': [AccessMode.READ_WRITE_ONCE.value],
        'resources': {
            'requests': {
                'storage': validate_quantity(external_pv.capacity, 'externalPv.capacity')
            }
        },
        'storageClassName': external_pv.storage_class or '',
        'volumeName': external_pv.name
    }

    metadata: Dict[str, Any] = {
        'name': EXTERNAL_PVC_NAME,
        'namespace': namespace,
    }
    if labels:
        metadata['labels'] = dict(labels)

    return {
        'apiVersion': 'v1',
        'kind': 'PersistentVolumeClaim',
        'metadata': metadata,
        'spec': spec
    }


def load_config_map(
    name: str,
    source_path: str,
    key: str,
    namespace: str,
    labels: Optional[Dict[str, str]] = None,
    logger: Optional[Logger] = None
) -> Dict[str, Any]:
    """
    Wrap the contents of a file into a ConfigMap under a single key

    A file that cannot be read is logged and rendered as empty content;
    the manifest is still returned.
    """
    logger = logger or LOG

    try:
        with open(source_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read config map {name} from {source_path}: {e}")
        content = ''

    metadata: Dict[str, Any] = {
        'name': name,
        'namespace': namespace,
    }
    if labels:
        metadata['labels'] = dict(labels)

    return {
        'apiVersion': 'v1',
        'kind': 'ConfigMap',
        'metadata': metadata,
        'data': {
            key: content
        }
    }
