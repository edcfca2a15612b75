"""Cloud credentials seeding.

Crossplane's GCP providers read a service account key (or ADC file) from a
secret on the management cluster. The secret is always recreated so a
rotated key is picked up on every bootstrap.
"""

from __future__ import annotations

from pathlib import Path

from ..cluster.transport import ClusterTransport
from ..errors import CredentialsNotFoundError, NebulaError
from ..shared.logging import get_logger
from ..shared.paths import default_credentials_path

logger = get_logger(__name__)


def resolve_credentials(explicit: str | Path | None = None) -> Path:
    """Pick the credentials file to seed.

    Args:
        explicit: Path given with --credentials. Wins over ADC.

    Raises:
        CredentialsNotFoundError: If neither file exists.
    """
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise CredentialsNotFoundError(f"Credentials file not found: {path}")
        return path

    adc = default_credentials_path()
    if adc is None:
        raise CredentialsNotFoundError()
    return adc


class CredentialSeeder:
    """Write the cloud credentials secret into the management cluster."""

    def __init__(
        self,
        transport: ClusterTransport,
        namespace: str = "crossplane-system",
        secret: str = "gcp-creds",
        key: str = "creds",
    ):
        self.transport = transport
        self.namespace = namespace
        self.secret = secret
        self.key = key

    def seed(self, explicit: str | Path | None = None) -> Path:
        """Create or replace the credentials secret.

        Returns:
            The credentials file that was used.

        Raises:
            CredentialsNotFoundError: If no credentials file is available.
            NebulaError: If kubectl fails to write the secret.
        """
        path = resolve_credentials(explicit)
        logger.info("seeding_credentials", source=str(path), namespace=self.namespace)

        result = self.transport.ensure_namespace(self.namespace)
        if not result.ok:
            raise NebulaError(f"Failed to create namespace {self.namespace}: {result.message}")

        result = self.transport.replace_secret_from_file(self.secret, self.namespace, self.key, path)
        if not result.ok:
            raise NebulaError(f"Failed to create secret {self.secret}: {result.message}")
        return path
