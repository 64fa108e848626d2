"""
imagebuild.integrations.cloud - Cloud Providers
=================================================

Orchestration code talks to the cloud only through BaseCloudProvider.

Available Providers:
    - AwsCliProvider:    drives the ``aws`` and ``cdk`` command-line tools.
    - MockCloudProvider: scripted in-memory double for tests and dry runs.

Usage:
    >>> from imagebuild.integrations.cloud import create_cloud_provider
    >>> cloud = create_cloud_provider(config.cloud, context=ctx)
    >>> await cloud.start_build("aws-lc-test-docker-images-linux-x86")
"""

from imagebuild.integrations.cloud.aws_cli import AwsCliProvider
from imagebuild.integrations.cloud.base import BaseCloudProvider
from imagebuild.integrations.cloud.factory import create_cloud_provider
from imagebuild.integrations.cloud.mock import MockCloudProvider
from imagebuild.integrations.cloud.runner import CommandResult, CommandRunner

__all__ = [
    "BaseCloudProvider",
    "AwsCliProvider",
    "MockCloudProvider",
    "CommandRunner",
    "CommandResult",
    "create_cloud_provider",
]
