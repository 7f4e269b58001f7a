"""
Typed view of the custom resource spec consumed by the manifest builders.

Field names on the wire are the operator's public API and are read exactly
as written in the custom resource (camelCase). Every record is frozen: the
builders only read them.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from backup_operator.errors import ConfigurationError


class StorageType(str, Enum):
    PROVISIONED = 'provisioned'
    PV = 'pv'
    EPHEMERAL = 'ephemeral'
    S3 = 's3'

    @classmethod
    def parse(cls, value: str) -> 'StorageType':
        try:
            return cls(value)
        except ValueError:
            supported = ', '.join(t.value for t in cls)
            raise ConfigurationError(
                f"Unsupported storage type: {value!r}. Supported types: {supported}"
            )

    @property
    def is_persistent(self) -> bool:
        return self in (StorageType.PROVISIONED, StorageType.PV)


class MetricsProfile(str, Enum):
    PROD = 'prod'
    DEV = 'dev'

    @classmethod
    def parse(cls, value: str) -> 'MetricsProfile':
        if not value:
            return cls.PROD
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported metrics profile: {value!r}. Supported profiles: prod, dev"
            )


class AccessMode(str, Enum):
    READ_WRITE_ONCE = 'ReadWriteOnce'
    READ_WRITE_MANY = 'ReadWriteMany'
    READ_ONLY_MANY = 'ReadOnlyMany'


def _int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key) or 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Field {key!r} must be an integer, got {value!r}")


def _str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if isinstance(value, (dict, list, tuple)):
        raise ConfigurationError(f"Field {key!r} must be a string, got {value!r}")
    return str(value)


def _bool(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"Field {key!r} must be a boolean, got {value!r}")
    return value


def _str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key) or []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"Field {key!r} must be a list of strings")
    return [str(item) for item in value]


@dataclass(frozen=True)
class StorageSpec:
    """Storage used by the backup daemon"""
    type: StorageType = StorageType.PROVISIONED
    size: str = ''
    storage_class: str = ''
    volumes: List[str] = field(default_factory=list)
    selectors: List[str] = field(default_factory=list)
    access_modes: List[str] = field(default_factory=list)
    nodes: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'StorageSpec':
        data = data or {}
        return cls(
            type=StorageType.parse(_str(data, 'type') or StorageType.PROVISIONED.value),
            size=_str(data, 'size'),
            storage_class=_str(data, 'storageClass'),
            volumes=_str_list(data, 'volumes'),
            selectors=_str_list(data, 'selectors'),
            access_modes=_str_list(data, 'accessModes'),
            nodes=_str_list(data, 'nodes'),
        )


@dataclass(frozen=True)
class S3Storage:
    url: str = ''
    access_key_id: str = ''
    secret_access_key: str = ''
    bucket: str = ''
    prefix: str = ''
    untrusted_cert: bool = False
    region: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['S3Storage']:
        if data is None:
            return None
        return cls(
            url=_str(data, 'url'),
            access_key_id=_str(data, 'accessKeyId'),
            secret_access_key=_str(data, 'secretAccessKey'),
            bucket=_str(data, 'bucket'),
            prefix=_str(data, 'prefix'),
            untrusted_cert=_bool(data, 'untrustedCert'),
            region=_str(data, 'region'),
        )


@dataclass(frozen=True)
class ExternalPv:
    """Pre-existing volume mounted next to the primary backup storage"""
    name: str = ''
    capacity: str = ''
    storage_class: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['ExternalPv']:
        if data is None:
            return None
        return cls(
            name=_str(data, 'name'),
            capacity=_str(data, 'capacity'),
            storage_class=_str(data, 'storageClass'),
        )


@dataclass(frozen=True)
class DbEngine:
    """Vault database secrets engine settings"""
    enabled: bool = False
    name: str = ''
    max_open_connections: int = 0
    max_idle_connections: int = 0
    max_connection_lifetime: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DbEngine':
        data = data or {}
        return cls(
            enabled=_bool(data, 'enabled'),
            name=_str(data, 'name'),
            max_open_connections=_int(data, 'maxOpenConnections'),
            max_idle_connections=_int(data, 'maxIdleConnections'),
            max_connection_lifetime=_str(data, 'maxConnectionLifetime'),
        )


@dataclass(frozen=True)
class VaultRegistration:
    image: str = ''
    enabled: bool = False
    path: str = ''
    url: str = ''
    role: str = ''
    method: str = ''
    token: str = ''
    db_engine: DbEngine = field(default_factory=DbEngine)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['VaultRegistration']:
        if data is None:
            return None
        return cls(
            image=_str(data, 'dockerImage'),
            enabled=_bool(data, 'enabled'),
            path=_str(data, 'path'),
            url=_str(data, 'url'),
            role=_str(data, 'role'),
            method=_str(data, 'method'),
            token=_str(data, 'token'),
            db_engine=DbEngine.from_dict(data.get('dbEngine')),
        )


@dataclass(frozen=True)
class ConsulRegistration:
    check_interval: str = ''
    check_timeout: str = ''
    deregister_after: str = ''
    host: str = ''
    service_name: str = ''
    meta: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    leader_meta: Dict[str, str] = field(default_factory=dict)
    leader_tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['ConsulRegistration']:
        if data is None:
            return None
        return cls(
            check_interval=_str(data, 'checkInterval'),
            check_timeout=_str(data, 'checkTimeout'),
            deregister_after=_str(data, 'deregisterAfter'),
            host=_str(data, 'host'),
            service_name=_str(data, 'serviceName'),
            meta=dict(data.get('meta') or {}),
            tags=_str_list(data, 'tags'),
            leader_meta=dict(data.get('leaderMeta') or {}),
            leader_tags=_str_list(data, 'leaderTags'),
        )


@dataclass(frozen=True)
class CloudSql:
    project: str = ''
    instance: str = ''
    auth_secret_name: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['CloudSql']:
        if data is None:
            return None
        return cls(
            project=_str(data, 'project'),
            instance=_str(data, 'instance'),
            auth_secret_name=_str(data, 'authSecretName'),
        )


@dataclass(frozen=True)
class BackupDaemonSpec:
    """Settings of the postgres-backup-daemon deployment"""
    image: str = ''
    resources: Dict[str, Any] = field(default_factory=dict)
    affinity: Dict[str, Any] = field(default_factory=dict)
    storage: StorageSpec = field(default_factory=StorageSpec)
    pg_host: str = ''
    ssl_mode: str = ''
    connect_timeout: str = ''
    eviction_policy: str = ''
    backup_schedule: str = ''
    granular_eviction: str = ''
    job_flag: str = ''
    granular_backup_schedule: str = ''
    databases_to_schedule: str = ''
    wal_archiving: bool = False
    allow_prefix: bool = False
    excluded_extensions: str = ''
    use_eviction_policy_first: str = ''
    eviction_binary_policy: str = ''
    archive_eviction_policy: str = ''
    compression_level: int = 0
    encryption: bool = False
    retain_archive_settings: bool = False
    backup_timeout: int = 0
    security_context: Dict[str, Any] = field(default_factory=dict)
    priority_class_name: str = ''
    s3_storage: Optional[S3Storage] = None
    pod_labels: Dict[str, str] = field(default_factory=dict)
    external_pv: Optional[ExternalPv] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BackupDaemonSpec':
        data = data or {}
        return cls(
            image=_str(data, 'image'),
            resources=dict(data.get('resources') or {}),
            affinity=dict(data.get('affinity') or {}),
            storage=StorageSpec.from_dict(data.get('storage')),
            pg_host=_str(data, 'pgHost'),
            ssl_mode=_str(data, 'sslMode'),
            connect_timeout=_str(data, 'connectTimeout'),
            eviction_policy=_str(data, 'evictionPolicy'),
            backup_schedule=_str(data, 'backupSchedule'),
            granular_eviction=_str(data, 'granularEviction'),
            job_flag=_str(data, 'jobFlag'),
            granular_backup_schedule=_str(data, 'granularBackupSchedule'),
            databases_to_schedule=_str(data, 'databasesToSchedule'),
            wal_archiving=_bool(data, 'walArchiving'),
            allow_prefix=_bool(data, 'allowPrefix'),
            excluded_extensions=_str(data, 'excludedExtensions'),
            use_eviction_policy_first=_str(data, 'useEvictionPolicyFirst'),
            eviction_binary_policy=_str(data, 'evictionBinaryPolicy'),
            archive_eviction_policy=_str(data, 'archiveEvictionPolicy'),
            compression_level=_int(data, 'compressionLevel'),
            encryption=_bool(data, 'encryption'),
            retain_archive_settings=_bool(data, 'retainArchiveSettings'),
            backup_timeout=_int(data, 'backupTimeout'),
            security_context=dict(data.get('securityContext') or {}),
            priority_class_name=_str(data, 'priorityClassName'),
            s3_storage=S3Storage.from_dict(data.get('s3Storage')),
            pod_labels=dict(data.get('podLabels') or {}),
            external_pv=ExternalPv.from_dict(data.get('externalPv')),
        )


@dataclass(frozen=True)
class MetricCollectorSpec:
    """Settings of the monitoring-collector deployment"""
    image: str = ''
    resources: Dict[str, Any] = field(default_factory=dict)
    affinity: Dict[str, Any] = field(default_factory=dict)
    influx_db_host: str = ''
    influx_database: str = ''
    metrics_profile: str = ''
    collection_interval: int = 0
    telegraf_plugin_timeout: int = 0
    dev_metrics_timeout: int = 0
    dev_metrics_interval: int = 0
    oc_exec_timeout: int = 0
    security_context: Dict[str, Any] = field(default_factory=dict)
    priority_class_name: str = ''
    pod_labels: Dict[str, str] = field(default_factory=dict)
    ssl_mode: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'MetricCollectorSpec':
        data = data or {}
        # Fail on unknown profiles while the resource is being read
        MetricsProfile.parse(_str(data, 'metricsProfile'))
        return cls(
            image=_str(data, 'image'),
            resources=dict(data.get('resources') or {}),
            affinity=dict(data.get('affinity') or {}),
            influx_db_host=_str(data, 'influxDbHost'),
            influx_database=_str(data, 'influxDatabase'),
            metrics_profile=_str(data, 'metricsProfile'),
            collection_interval=_int(data, 'collectionInterval'),
            telegraf_plugin_timeout=_int(data, 'telegrafPluginTimeout'),
            dev_metrics_timeout=_int(data, 'devMetricsTimeout'),
            dev_metrics_interval=_int(data, 'devMetricsInterval'),
            oc_exec_timeout=_int(data, 'ocExecTimeout'),
            security_context=dict(data.get('securityContext') or {}),
            priority_class_name=_str(data, 'priorityClassName'),
            pod_labels=dict(data.get('podLabels') or {}),
            ssl_mode=_str(data, 'sslMode'),
        )

    @property
    def profile(self) -> MetricsProfile:
        return MetricsProfile.parse(self.metrics_profile)


@dataclass(frozen=True)
class OperatorSpec:
    """The spec section of the operator's custom resource"""
    pg_cluster_name: str = ''
    service_account_name: str = ''
    backup_daemon: Optional[BackupDaemonSpec] = None
    metric_collector: Optional[MetricCollectorSpec] = None
    vault_registration: Optional[VaultRegistration] = None
    consul_registration: Optional[ConsulRegistration] = None
    cloud_sql: Optional[CloudSql] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'OperatorSpec':
        data = data or {}
        backup_daemon = data.get('backupDaemon')
        metric_collector = data.get('metricCollector')
        return cls(
            pg_cluster_name=_str(data, 'pgClusterName'),
            service_account_name=_str(data, 'serviceAccountName'),
            backup_daemon=(
                BackupDaemonSpec.from_dict(backup_daemon) if backup_daemon is not None else None
            ),
            metric_collector=(
                MetricCollectorSpec.from_dict(metric_collector)
                if metric_collector is not None else None
            ),
            vault_registration=VaultRegistration.from_dict(data.get('vaultRegistration')),
            consul_registration=ConsulRegistration.from_dict(data.get('consulRegistration')),
            cloud_sql=CloudSql.from_dict(data.get('cloudSql')),
        )
