"""
Secret Providers

Resolve secret references (Secrets Manager ARNs or names) to their current
value. Values are fetched on every call and never cached in the process.
"""

from typing import Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from stripe_sevdesk.config import Settings
from stripe_sevdesk.utils.exceptions import ConfigurationException, SecretException
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)


class SecretProvider:
    """Interface for anything that turns a secret reference into text"""

    async def resolve(self, reference: str) -> str:
        raise NotImplementedError


class SecretsManagerProvider(SecretProvider):
    """AWS Secrets Manager backed provider"""

    def __init__(self, region: str, endpoint_url: Optional[str] = None):
        self.session = aioboto3.Session(region_name=region)
        self.endpoint_url = endpoint_url

    async def resolve(self, reference: str) -> str:
        """
        Retrieve the current value of a secret.

        Args:
            reference: Secret ARN or name

        Returns:
            The secret value as text

        Raises:
            SecretException: If the secret cannot be read
        """
        try:
            async with self.session.client(
                "secretsmanager", endpoint_url=self.endpoint_url
            ) as client:
                response = await client.get_secret_value(SecretId=reference)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                f"Failed to retrieve secret: {e}",
                extra={"secret_reference": reference},
            )
            raise SecretException(
                "Failed to retrieve secret",
                details={"secret_reference": reference, "error": str(e)},
            ) from e

        if response.get("SecretString") is not None:
            return response["SecretString"]
        if response.get("SecretBinary") is not None:
            return response["SecretBinary"].decode("utf-8")

        raise SecretException(
            "Secret has no value",
            details={"secret_reference": reference},
        )


class EnvironmentSecretProvider(SecretProvider):
    """Local development provider: the reference already is the value"""

    async def resolve(self, reference: str) -> str:
        return reference


def get_secret_provider(settings: Settings) -> SecretProvider:
    """Build the provider selected by SECRETS_BACKEND"""
    if settings.secrets_backend == "aws":
        return SecretsManagerProvider(
            region=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url,
        )
    if settings.secrets_backend == "env":
        return EnvironmentSecretProvider()

    raise ConfigurationException(
        f"Unknown secrets backend: {settings.secrets_backend}",
        details={"secrets_backend": settings.secrets_backend},
    )
