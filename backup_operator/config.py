"""
Configuration management for the Postgres Backup Operator
"""

import logging
import os
from typing import Optional
from dataclasses import dataclass, field

import kopf


@dataclass
class OperatorConfig:
    """
    Settings shared by every manifest built in one reconciliation pass.

    The object is passed explicitly into each builder call; there is no
    process-wide instance.
    """

    # Operator metadata
    name: str = 'postgres-backup-operator'
    version: str = '0.1.0'

    # Namespace the manifests are rendered into
    namespace: str = field(default_factory=lambda: os.getenv('WATCH_NAMESPACE', ''))

    # Pre-provisioned static assets (collector configs)
    assets_dir: str = field(default_factory=lambda:
        os.getenv('OPERATOR_ASSETS_DIR', '/opt/operator')
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    @classmethod
    def from_env(cls) -> 'OperatorConfig':
        """
        Create configuration from environment variables

        Environment variables:
        - WATCH_NAMESPACE: Namespace manifests are rendered into
        - OPERATOR_ASSETS_DIR: Directory holding collector configs (default: /opt/operator)
        - LOG_LEVEL: Logging level (default: INFO)
        """
        config = cls()
        config.validate()
        return config

    def validate(self) -> None:
        """
        Validate configuration

        Raises:
            ValueError: If configuration is invalid
        """
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

        if not self.assets_dir:
            raise ValueError("Assets directory must not be empty")

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    def asset_path(self, file_name: str) -> str:
        """Get the full path of a static asset"""
        return os.path.join(self.assets_dir, file_name)

    def configure(self, settings: kopf.OperatorSettings) -> None:
        """
        Apply logging and persistence settings to a kopf operator

        Args:
            settings: Settings object kopf passes to startup handlers
        """
        settings.persistence.finalizer = f'{self.name}/finalizer'
        settings.posting.level = self.level
        logging.getLogger('backup_operator').setLevel(self.level)
