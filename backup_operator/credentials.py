"""
Names of the secrets holding Postgres credentials for a cluster variant
"""

from typing import Dict, NamedTuple


class SecretNames(NamedTuple):
    root: str
    replication: str


DEFAULT_SECRET_NAMES = SecretNames(
    root='postgres-credentials',
    replication='replicator-credentials',
)

# Cluster variants whose credentials live under non-default secret names
SECRET_NAMES: Dict[str, SecretNames] = {
    'gpdb': SecretNames(
        root='gpdb-pg-root-credentials',
        replication='gpdb-pg-repl-credentials',
    ),
}


def secret_names(cluster_variant: str) -> SecretNames:
    """
    Get the root and replication secret names for a cluster variant

    Unknown variants use the default names.
    """
    return SECRET_NAMES.get(cluster_variant, DEFAULT_SECRET_NAMES)


def root_secret_name(cluster_variant: str) -> str:
    return secret_names(cluster_variant).root


def replication_secret_name(cluster_variant: str) -> str:
    return secret_names(cluster_variant).replication
