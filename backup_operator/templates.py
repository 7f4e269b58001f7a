import copy
import logging
from typing import Any, Dict, List, Optional

from backup_operator.config import OperatorConfig
from backup_operator.environment import (
    S3_CREDENTIALS_SECRET,
    backup_daemon_env,
    metric_collector_env,
)
from backup_operator.spec import (
    BackupDaemonSpec,
    MetricCollectorSpec,
    OperatorSpec,
    S3Storage,
)
from backup_operator.storage import (
    EXTERNAL_PVC_NAME,
    external_pvc_manifest,
    load_config_map,
    pvc_manifest,
)
from backup_operator.utils import Logger, merge_labels

LOG = logging.getLogger(__name__)

BACKUP_DAEMON_NAME = 'postgres-backup-daemon'
BACKUP_DAEMON_LABELS = {'app': BACKUP_DAEMON_NAME, 'name': BACKUP_DAEMON_NAME}
BACKUP_PVC_NAME = 'postgres-backup-pvc'

METRIC_COLLECTOR_NAME = 'monitoring-collector'
METRIC_COLLECTOR_LABELS = {'app': METRIC_COLLECTOR_NAME}
TELEGRAF_CONFIG_MAP = 'telegraf-configmap'
INFLUXDB_TELEGRAF_CONFIG_MAP = 'influxdb-telegraf-configmap'

FULL_BACKUPS_COLLECTOR_CONFIG = 'postgres-backup-daemon.collector-config'
GRANULAR_BACKUPS_COLLECTOR_CONFIG = 'postgres-granular-backup-daemon.collector-config'

HOSTNAME_LABEL = 'kubernetes.io/hostname'

BACKUP_DAEMON_PORTS = [
    {'name': 'web', 'port': 8080},
    {'name': 'backups', 'port': 8081},
    {'name': 'archive', 'port': 8082},
    {'name': 'granular', 'port': 9000},
]

METRIC_COLLECTOR_PORTS = [
    {'name': 'port', 'port': 8000},
    {'name': 'prometheus-port', 'port': 9273},
]


class ManifestTemplates:
    """
    Templates for Kubernetes manifests used by the operator
    """

    @staticmethod
    def _health_probe() -> Dict[str, Any]:
        """
        Liveness and readiness probe of the backup daemon
        """
        return {
            'httpGet': {
                'path': '/v2/health',
                'port': 8080
            },
            'initialDelaySeconds': 20,
            'periodSeconds': 10,
            'failureThreshold': 30,
            'timeoutSeconds': 5,
            'successThreshold': 1
        }

    @staticmethod
    def _service(name: str, namespace: str, labels: Dict[str, str],
                 ports: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            'apiVersion': 'v1',
            'kind': 'Service',
            'metadata': {
                'name': name,
                'namespace': namespace,
                'labels': dict(labels)
            },
            'spec': {
                'selector': dict(labels),
                'ports': [dict(port) for port in ports]
            }
        }

    @staticmethod
    def backup_daemon_deployment(
        spec: BackupDaemonSpec,
        cluster_name: str,
        service_account: str,
        config: OperatorConfig,
        logger: Optional[Logger] = None
    ) -> Dict[str, Any]:
        """
        Generate the postgres-backup-daemon Deployment manifest
        """
        logger = logger or LOG
        labels = merge_labels(BACKUP_DAEMON_LABELS, spec.pod_labels)
        nodes = spec.storage.nodes

        if spec.storage.type.is_persistent:
            backup_volume = {
                'name': 'backup-data',
                'persistentVolumeClaim': {
                    'claimName': BACKUP_PVC_NAME,
                    'readOnly': False
                }
            }
        else:
            backup_volume = {
                'name': 'backup-data',
                'emptyDir': {}
            }

        volumes = [backup_volume]
        volume_mounts = [{
            'name': 'backup-data',
            'mountPath': '/backup-storage'
        }]

        if spec.external_pv is not None:
            volumes.append({
                'name': 'external-backup-data',
                'persistentVolumeClaim': {
                    'claimName': EXTERNAL_PVC_NAME,
                    'readOnly': False
                }
            })
            volume_mounts.append({
                'name': 'external-backup-data',
                'mountPath': '/external/'
            })

        pod_spec: Dict[str, Any] = {
            'serviceAccountName': service_account,
            'affinity': copy.deepcopy(spec.affinity),
            'securityContext': copy.deepcopy(spec.security_context),
            'containers': [{
                'name': BACKUP_DAEMON_NAME,
                'image': spec.image,
                'env': backup_daemon_env(spec, cluster_name),
                'ports': [
                    {'name': port['name'], 'containerPort': port['port']}
                    for port in BACKUP_DAEMON_PORTS
                ],
                'volumeMounts': volume_mounts,
                'livenessProbe': ManifestTemplates._health_probe(),
                'readinessProbe': ManifestTemplates._health_probe(),
                'resources': copy.deepcopy(spec.resources)
            }],
            'volumes': volumes
        }

        if nodes:
            # Only the first node is used to pin the daemon
            if len(nodes) > 1:
                logger.warning(f"Storage lists {len(nodes)} nodes, "
                               f"{BACKUP_DAEMON_NAME} is pinned to {nodes[0]} only")
            pod_spec['nodeSelector'] = {HOSTNAME_LABEL: nodes[0]}

        if spec.priority_class_name:
            pod_spec['priorityClassName'] = spec.priority_class_name

        return {
            'apiVersion': 'apps/v1',
            'kind': 'Deployment',
            'metadata': {
                'name': BACKUP_DAEMON_NAME,
                'namespace': config.namespace,
                'labels': dict(labels)
            },
            'spec': {
                # Two daemons must never share the backup storage
                'strategy': {
                    'type': 'Recreate'
                },
                'selector': {
                    'matchLabels': dict(labels)
                },
                'template': {
                    'metadata': {
                        'labels': dict(labels)
                    },
                    'spec': pod_spec
                }
            }
        }

    @staticmethod
    def monitoring_deployment(
        spec: MetricCollectorSpec,
        cluster_name: str,
        service_account: str,
        config: OperatorConfig
    ) -> Dict[str, Any]:
        """
        Generate the monitoring-collector Deployment manifest
        """
        labels = merge_labels(METRIC_COLLECTOR_LABELS, spec.pod_labels)

        volumes = [{
            'name': 'telegraf-config-volume',
            'configMap': {
                'name': TELEGRAF_CONFIG_MAP
            }
        }]
        volume_mounts = [{
            'name': 'telegraf-config-volume',
            'mountPath': '/etc/telegraf/telegraf_temp.conf',
            'subPath': 'telegraf_temp.conf'
        }]

        if spec.influx_db_host:
            volumes.append({
                'name': 'influxdb-telegraf-config-volume',
                'configMap': {
                    'name': INFLUXDB_TELEGRAF_CONFIG_MAP
                }
            })
            volume_mounts.append({
                'name': 'influxdb-telegraf-config-volume',
                'mountPath': '/etc/telegraf/telegraf.d/influxdb-telegraf_temp.conf',
                'subPath': 'influxdb-telegraf_temp.conf'
            })

        pod_spec: Dict[str, Any] = {
            'serviceAccountName': service_account,
            'affinity': copy.deepcopy(spec.affinity),
            'securityContext': copy.deepcopy(spec.security_context),
            'containers': [{
                'name': METRIC_COLLECTOR_NAME,
                'image': spec.image,
                'env': metric_collector_env(spec, cluster_name),
                'volumeMounts': volume_mounts,
                'resources': copy.deepcopy(spec.resources)
            }],
            'volumes': volumes
        }

        if spec.priority_class_name:
            pod_spec['priorityClassName'] = spec.priority_class_name

        return {
            'apiVersion': 'apps/v1',
            'kind': 'Deployment',
            'metadata': {
                'name': METRIC_COLLECTOR_NAME,
                'namespace': config.namespace,
                'labels': dict(labels)
            },
            'spec': {
                'strategy': {
                    'type': 'RollingUpdate'
                },
                'selector': {
                    'matchLabels': dict(labels)
                },
                'template': {
                    'metadata': {
                        'labels': dict(labels)
                    },
                    'spec': pod_spec
                }
            }
        }

    @staticmethod
    def backup_daemon_pvc(
        spec: BackupDaemonSpec,
        config: OperatorConfig,
        logger: Optional[Logger] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Generate the backup storage claim, None when the daemon uses emptyDir
        """
        return pvc_manifest(
            claim_name=BACKUP_PVC_NAME,
            namespace=config.namespace,
            storage=spec.storage,
            replica_index=1,
            labels=BACKUP_DAEMON_LABELS,
            logger=logger
        )

    @staticmethod
    def external_backup_pvc(spec: BackupDaemonSpec, config: OperatorConfig) -> Optional[Dict[str, Any]]:
        if spec.external_pv is None:
            return None
        return external_pvc_manifest(spec.external_pv, config.namespace, BACKUP_DAEMON_LABELS)

    @staticmethod
    def s3_credentials_secret(s3_storage: S3Storage, config: OperatorConfig) -> Dict[str, Any]:
        """
        Generate the Secret holding the S3 keys referenced by the backup daemon
        """
        return {
            'apiVersion': 'v1',
            'kind': 'Secret',
            'type': 'Opaque',
            'metadata': {
                'name': S3_CREDENTIALS_SECRET,
                'namespace': config.namespace,
                'labels': dict(BACKUP_DAEMON_LABELS)
            },
            'stringData': {
                'accessKeyId': s3_storage.access_key_id,
                'secretAccessKey': s3_storage.secret_access_key
            }
        }

    @staticmethod
    def backup_daemon_service(spec: BackupDaemonSpec, config: OperatorConfig) -> Dict[str, Any]:
        """Service selecting the daemon pods by the same labels the Deployment gives them"""
        return ManifestTemplates._service(
            BACKUP_DAEMON_NAME,
            config.namespace,
            merge_labels(BACKUP_DAEMON_LABELS, spec.pod_labels),
            BACKUP_DAEMON_PORTS
        )

    @staticmethod
    def monitoring_service(spec: MetricCollectorSpec, config: OperatorConfig) -> Dict[str, Any]:
        return ManifestTemplates._service(
            METRIC_COLLECTOR_NAME,
            config.namespace,
            merge_labels(METRIC_COLLECTOR_LABELS, spec.pod_labels),
            METRIC_COLLECTOR_PORTS
        )

    @staticmethod
    def telegraf_config_map(
        config: OperatorConfig, logger: Optional[Logger] = None
    ) -> Dict[str, Any]:
        return load_config_map(
            name=TELEGRAF_CONFIG_MAP,
            source_path=config.asset_path(TELEGRAF_CONFIG_MAP),
            key='telegraf_temp.conf',
            namespace=config.namespace,
            labels=METRIC_COLLECTOR_LABELS,
            logger=logger
        )

    @staticmethod
    def influxdb_telegraf_config_map(
        config: OperatorConfig, logger: Optional[Logger] = None
    ) -> Dict[str, Any]:
        return load_config_map(
            name=INFLUXDB_TELEGRAF_CONFIG_MAP,
            source_path=config.asset_path(INFLUXDB_TELEGRAF_CONFIG_MAP),
            key='influxdb-telegraf_temp.conf',
            namespace=config.namespace,
            labels=METRIC_COLLECTOR_LABELS,
            logger=logger
        )

    @staticmethod
    def full_backups_monitoring_config_map(
        config: OperatorConfig, key: str, logger: Optional[Logger] = None
    ) -> Dict[str, Any]:
        return load_config_map(
            name=FULL_BACKUPS_COLLECTOR_CONFIG,
            source_path=config.asset_path(FULL_BACKUPS_COLLECTOR_CONFIG),
            key=key,
            namespace=config.namespace,
            logger=logger
        )

    @staticmethod
    def granular_backups_monitoring_config_map(
        config: OperatorConfig, key: str, logger: Optional[Logger] = None
    ) -> Dict[str, Any]:
        return load_config_map(
            name=GRANULAR_BACKUPS_COLLECTOR_CONFIG,
            source_path=config.asset_path(GRANULAR_BACKUPS_COLLECTOR_CONFIG),
            key=key,
            namespace=config.namespace,
            logger=logger
        )


def render_manifests(
    spec: OperatorSpec,
    config: OperatorConfig,
    logger: Optional[Logger] = None
) -> List[Dict[str, Any]]:
    """
    Render every manifest for the components configured in the custom resource

    Claims, secrets and config maps come before the deployments that use them.

    Raises:
        ConfigurationError: If a configured component cannot be built
    """
    logger = logger or LOG
    manifests: List[Dict[str, Any]] = []

    daemon = spec.backup_daemon
    if daemon is not None:
        logger.info(f"Rendering {BACKUP_DAEMON_NAME} with {daemon.storage.type.value} storage")
        pvc = ManifestTemplates.backup_daemon_pvc(daemon, config, logger)
        if pvc is not None:
            manifests.append(pvc)
        external_pvc = ManifestTemplates.external_backup_pvc(daemon, config)
        if external_pvc is not None:
            manifests.append(external_pvc)
        if daemon.s3_storage is not None:
            manifests.append(ManifestTemplates.s3_credentials_secret(daemon.s3_storage, config))
        manifests.append(ManifestTemplates.backup_daemon_deployment(
            daemon, spec.pg_cluster_name, spec.service_account_name, config, logger
        ))
        manifests.append(ManifestTemplates.backup_daemon_service(daemon, config))

    collector = spec.metric_collector
    if collector is not None:
        logger.info(f"Rendering {METRIC_COLLECTOR_NAME} with {collector.profile.value} metrics profile")
        manifests.append(ManifestTemplates.telegraf_config_map(config, logger))
        if collector.influx_db_host:
            manifests.append(ManifestTemplates.influxdb_telegraf_config_map(config, logger))
        manifests.append(ManifestTemplates.monitoring_deployment(
            collector, spec.pg_cluster_name, spec.service_account_name, config
        ))
        manifests.append(ManifestTemplates.monitoring_service(collector, config))

    return manifests
