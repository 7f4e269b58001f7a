"""
Environment variables of the backup daemon and metrics collector containers
"""

from typing import Any, Dict, List

from backup_operator.credentials import replication_secret_name, root_secret_name
from backup_operator.spec import BackupDaemonSpec, MetricCollectorSpec, MetricsProfile, S3Storage
from backup_operator.utils import format_bool

DEFAULT_SSL_MODE = 'prefer'
POSTGRES_PORT = 5432
ENDPOINT_WORKERS = 2

MONITORING_CREDENTIALS_SECRET = 'monitoring-credentials'
INFLUXDB_ADMIN_CREDENTIALS_SECRET = 'influx-db-admin-credentials'
S3_CREDENTIALS_SECRET = 's3-storage-credentials'


def env_value(name: str, value: Any) -> Dict[str, Any]:
    return {'name': name, 'value': str(value)}


def env_from_secret(name: str, secret: str, key: str) -> Dict[str, Any]:
    return {
        'name': name,
        'valueFrom': {
            'secretKeyRef': {
                'name': secret,
                'key': key
            }
        }
    }


def env_from_field(name: str, field_path: str) -> Dict[str, Any]:
    return {
        'name': name,
        'valueFrom': {
            'fieldRef': {
                'fieldPath': field_path
            }
        }
    }


def backup_daemon_env(spec: BackupDaemonSpec, cluster_name: str) -> List[Dict[str, Any]]:
    """
    Generate environment variables for the backup daemon container
    """
    root_secret = root_secret_name(cluster_name)

    env_vars = [
        env_from_secret('POSTGRES_PASSWORD', root_secret, 'password'),
        env_from_secret('POSTGRES_USER', root_secret, 'username'),
        env_from_secret('PGPASSWORD', replication_secret_name(cluster_name), 'password'),
        env_value('PG_CLUSTER_NAME', cluster_name),
        env_value('PUBLIC_ENDPOINTS_WORKERS_NUMBER', ENDPOINT_WORKERS),
        env_value('PRIVATE_ENDPOINTS_WORKERS_NUMBER', ENDPOINT_WORKERS),
        env_value('ARCHIVE_ENDPOINTS_WORKERS_NUMBER', ENDPOINT_WORKERS),
        env_value('GRANULAR_EVICTION', spec.granular_eviction),
        env_value('JOB_FLAG', spec.job_flag),
        env_value('CONNECT_TIMEOUT', spec.connect_timeout),
        env_value('ALLOW_PREFIX', format_bool(spec.allow_prefix)),
        env_value('EXCLUDED_EXTENSIONS', spec.excluded_extensions),
        env_value('COMPRESSION_LEVEL', spec.compression_level),
        env_value('ENCRYPTION', format_bool(spec.encryption)),
        env_value('RETAIN_ARCHIVE_SETTINGS', format_bool(spec.retain_archive_settings)),
        env_value('BACKUP_TIMEOUT', spec.backup_timeout),
        env_value('GRANULAR_BACKUP_SCHEDULE', spec.granular_backup_schedule),
        env_value('DATABASES_TO_SCHEDULE', spec.databases_to_schedule),
        env_value('USE_EVICTION_POLICY_FIRST', spec.use_eviction_policy_first),
        env_value('EVICTION_POLICY_BINARY', spec.eviction_binary_policy),
        # The daemon compares this one against Python's literal
        env_value('AUTH', 'False'),
        env_value('POSTGRES_HOST', spec.pg_host),
        env_value('POSTGRES_PORT', POSTGRES_PORT),
        env_value('STORAGE_TYPE', spec.storage.type.value),
        env_value('EVICTION_POLICY', spec.eviction_policy),
        env_value('BACKUP_SCHEDULE', spec.backup_schedule),
        env_value('PGSSLMODE', spec.ssl_mode or DEFAULT_SSL_MODE),
        env_value('ARCHIVE_EVICT_POLICY', spec.archive_eviction_policy),
        env_from_field('POD_NAMESPACE', 'metadata.namespace'),
    ]

    if spec.s3_storage is not None:
        env_vars.extend(s3_env(spec.s3_storage))

    return env_vars


def s3_env(s3_storage: S3Storage) -> List[Dict[str, Any]]:
    """
    Environment variables pointing the backup daemon at S3 compatible storage
    """
    return [
        env_value('AWS_S3_ENDPOINT_URL', s3_storage.url),
        env_value('CONTAINER', s3_storage.bucket),
        env_value('AWS_S3_PREFIX', s3_storage.prefix),
        env_value('AWS_DEFAULT_REGION', s3_storage.region),
        env_value('AWS_S3_UNTRUSTED_CERT', format_bool(s3_storage.untrusted_cert)),
        env_from_secret('AWS_ACCESS_KEY_ID', S3_CREDENTIALS_SECRET, 'accessKeyId'),
        env_from_secret('AWS_SECRET_ACCESS_KEY', S3_CREDENTIALS_SECRET, 'secretAccessKey'),
    ]


def metric_collector_env(spec: MetricCollectorSpec, cluster_name: str) -> List[Dict[str, Any]]:
    """
    Generate environment variables for the metrics collector container
    """
    root_secret = root_secret_name(cluster_name)

    env_vars = [
        env_from_secret('MONITORING_USER', MONITORING_CREDENTIALS_SECRET, 'username'),
        env_from_secret('MONITORING_PASSWORD', MONITORING_CREDENTIALS_SECRET, 'password'),
        env_from_secret('PG_ROOT_USER', root_secret, 'username'),
        env_from_secret('PG_ROOT_PASSWORD', root_secret, 'password'),
        env_from_secret('INFLUXDB_USER', INFLUXDB_ADMIN_CREDENTIALS_SECRET, 'username'),
        env_from_secret('INFLUXDB_PASSWORD', INFLUXDB_ADMIN_CREDENTIALS_SECRET, 'password'),
        env_from_field('NAMESPACE', 'metadata.namespace'),
        env_value('INFLUXDB_URL', spec.influx_db_host),
        env_value('INFLUXDB_DATABASE', spec.influx_database),
        env_value('TELEGRAF_PLUGIN_TIMEOUT', spec.telegraf_plugin_timeout),
        env_value('METRIC_COLLECTION_INTERVAL', spec.collection_interval),
        env_value('METRIC_COLLECTOR_OC_EXEC_TIMEOUT', spec.oc_exec_timeout),
        env_value('METRICS_PROFILE', spec.metrics_profile),
        env_value('PGCLUSTER', cluster_name),
        env_value('POSTGRESQL_CREDENTIALS', root_secret),
        env_value('PATRONI_ENTITY_TYPE', 'deployment'),
        env_value('PGSSLMODE', spec.ssl_mode or DEFAULT_SSL_MODE),
    ]

    env_vars.extend(dev_metrics_env(spec))
    return env_vars


def dev_metrics_env(spec: MetricCollectorSpec) -> List[Dict[str, Any]]:
    """Extra variables enabled by the dev metrics profile"""
    if spec.profile != MetricsProfile.DEV:
        return []
    return [
        env_value('DEV_METRICS_TIMEOUT', spec.dev_metrics_timeout),
        env_value('DEV_METRICS_INTERVAL', spec.dev_metrics_interval),
    ]
