"""
Errors raised while building manifests for the Postgres Backup Operator
"""

import kopf


class ConfigurationError(kopf.PermanentError):
    """
    The custom resource is malformed and no manifest can be built from it.

    Derives from kopf.PermanentError so the reconciliation driver stops
    retrying until the resource is changed.
    """
