"""
imagebuild.integrations.cloud.factory - Cloud Provider Factory
================================================================

Maps ``CloudConfig.provider`` to a concrete BaseCloudProvider.

Usage:
    >>> from imagebuild.core.config import CloudConfig
    >>> provider = create_cloud_provider(CloudConfig(provider="mock"))
    >>> provider.provider_name
    'mock'
"""

from __future__ import annotations

from typing import Optional

from imagebuild.core.config import CloudConfig
from imagebuild.core.exceptions import ConfigurationError
from imagebuild.core.models import DeploymentContext
from imagebuild.integrations.cloud.base import BaseCloudProvider


def create_cloud_provider(
    config: CloudConfig,
    *,
    context: Optional[DeploymentContext] = None,
) -> BaseCloudProvider:
    """Create the cloud provider named by ``config.provider``.

        - "aws"  → AwsCliProvider, pinned to the context's region if given
        - "mock" → MockCloudProvider; with a context, every expected image
                   is pre-published so a dry-run DEPLOY completes

    Args:
        config: Cloud backend configuration.
        context: The run's DeploymentContext, when one exists yet.

    Raises:
        ConfigurationError: If the provider name is not recognized.
    """
    provider_name = config.provider.lower()

    if provider_name == "aws":
        from imagebuild.integrations.cloud.aws_cli import AwsCliProvider
        return AwsCliProvider(config, region=context.region if context else None)

    if provider_name == "mock":
        from imagebuild.integrations.cloud.mock import MockCloudProvider
        provider = MockCloudProvider()
        if context is not None:
            provider.seed_successful_builds(context.artifact_families())
        return provider

    raise ConfigurationError(
        message=f"Unknown cloud provider: '{provider_name}'. Available providers: 'aws', 'mock'.",
        details={"provider": provider_name},
    )
