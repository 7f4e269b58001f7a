"""
Tests for reading the custom resource spec into typed records.
"""

import pytest

from backup_operator.errors import ConfigurationError
from backup_operator.spec import (
    BackupDaemonSpec,
    MetricCollectorSpec,
    MetricsProfile,
    OperatorSpec,
    S3Storage,
    StorageSpec,
    StorageType,
    VaultRegistration,
)


class TestStorageSpec:
    def test_reads_wire_names(self):
        storage = StorageSpec.from_dict({
            'type': 'pv',
            'size': '2Gi',
            'storageClass': 'local',
            'volumes': ['pv-a'],
            'selectors': ['role=primary'],
            'accessModes': ['ReadWriteOnce'],
            'nodes': ['node-1'],
        })
        assert storage.type is StorageType.PV
        assert storage.storage_class == 'local'
        assert storage.volumes == ['pv-a']
        assert storage.selectors == ['role=primary']
        assert storage.access_modes == ['ReadWriteOnce']
        assert storage.nodes == ['node-1']

    def test_defaults(self):
        storage = StorageSpec.from_dict(None)
        assert storage.type is StorageType.PROVISIONED
        assert storage.volumes == []

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            StorageSpec.from_dict({'type': 'nfs'})

    def test_list_fields_must_be_lists(self):
        with pytest.raises(ConfigurationError):
            StorageSpec.from_dict({'type': 'pv', 'volumes': 'pv-a'})

    @pytest.mark.parametrize('storage_type,persistent', [
        ('provisioned', True),
        ('pv', True),
        ('ephemeral', False),
        ('s3', False),
    ])
    def test_persistence(self, storage_type, persistent):
        assert StorageType.parse(storage_type).is_persistent is persistent


class TestBackupDaemonSpec:
    def test_optional_blocks(self):
        spec = BackupDaemonSpec.from_dict({
            'externalPv': {'name': 'nfs-pv', 'capacity': '10Gi', 'storageClass': 'nfs'},
            's3Storage': {'bucket': 'backups', 'untrustedCert': True},
        })
        assert spec.external_pv.name == 'nfs-pv'
        assert spec.external_pv.capacity == '10Gi'
        assert spec.s3_storage.bucket == 'backups'
        assert spec.s3_storage.untrusted_cert is True

    def test_absent_blocks_disable_features(self):
        spec = BackupDaemonSpec.from_dict({})
        assert spec.external_pv is None
        assert spec.s3_storage is None

    def test_integer_fields(self):
        assert BackupDaemonSpec.from_dict({'compressionLevel': '9'}).compression_level == 9
        with pytest.raises(ConfigurationError):
            BackupDaemonSpec.from_dict({'backupTimeout': 'soon'})


class TestMetricCollectorSpec:
    def test_profile(self):
        assert MetricCollectorSpec.from_dict({'metricsProfile': 'dev'}).profile is MetricsProfile.DEV
        assert MetricCollectorSpec.from_dict({}).profile is MetricsProfile.PROD

    def test_unknown_profile(self):
        with pytest.raises(ConfigurationError):
            MetricCollectorSpec.from_dict({'metricsProfile': 'verbose'})


class TestOperatorSpec:
    def test_components(self):
        spec = OperatorSpec.from_dict({
            'pgClusterName': 'gpdb',
            'serviceAccountName': 'postgres-sa',
            'backupDaemon': {'image': 'daemon:1'},
            'vaultRegistration': {
                'enabled': True,
                'dbEngine': {'name': 'postgres', 'maxOpenConnections': 5},
            },
            'consulRegistration': {'serviceName': 'pg', 'tags': ['a']},
            'cloudSql': {'project': 'p', 'instance': 'i'},
        })
        assert spec.pg_cluster_name == 'gpdb'
        assert spec.backup_daemon.image == 'daemon:1'
        assert spec.metric_collector is None
        assert spec.vault_registration.db_engine.max_open_connections == 5
        assert spec.consul_registration.tags == ['a']
        assert spec.cloud_sql.instance == 'i'

    def test_empty(self):
        spec = OperatorSpec.from_dict({})
        assert spec.backup_daemon is None
        assert spec.vault_registration is None
        assert spec.consul_registration is None
        assert spec.cloud_sql is None


class TestNullFields:
    def test_null_strings_read_as_empty(self):
        spec = BackupDaemonSpec.from_dict({
            'image': None,
            'pgHost': None,
            'evictionPolicy': None,
            'connectTimeout': None,
            'storage': {'type': None, 'size': None, 'storageClass': None},
            's3Storage': {'bucket': None, 'region': None},
        })
        assert spec.image == ''
        assert spec.pg_host == ''
        assert spec.eviction_policy == ''
        assert spec.connect_timeout == ''
        assert spec.storage.type is StorageType.PROVISIONED
        assert spec.storage.size == ''
        assert spec.s3_storage.bucket == ''

    def test_null_metrics_profile_is_prod(self):
        spec = MetricCollectorSpec.from_dict({'metricsProfile': None, 'influxDbHost': None})
        assert spec.metrics_profile == ''
        assert spec.influx_db_host == ''
        assert spec.profile is MetricsProfile.PROD

    def test_structured_value_for_string_field(self):
        with pytest.raises(ConfigurationError):
            BackupDaemonSpec.from_dict({'pgHost': {'name': 'pg'}})


class TestBooleanFields:
    def test_null_is_false(self):
        spec = BackupDaemonSpec.from_dict({'allowPrefix': None, 'encryption': None})
        assert spec.allow_prefix is False
        assert spec.encryption is False

    @pytest.mark.parametrize('value', ['false', 'true', 0, 1])
    def test_non_boolean_rejected(self, value):
        with pytest.raises(ConfigurationError):
            BackupDaemonSpec.from_dict({'allowPrefix': value})

    def test_nested_blocks_are_strict(self):
        with pytest.raises(ConfigurationError):
            S3Storage.from_dict({'untrustedCert': 'false'})
        with pytest.raises(ConfigurationError):
            VaultRegistration.from_dict({'enabled': 'yes'})
