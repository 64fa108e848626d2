"""
Shared Test Fixtures for imagebuild
=====================================

Reusable pytest fixtures, organized by layer:

    1. Clock (FakeClock sleep double)
    2. Configuration + DeploymentContext
    3. Cloud provider (MockCloudProvider)
    4. Build-script directory on disk

No fixture performs a real cloud call or a real sleep.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest

from imagebuild.core.config import OrchestratorConfig, PollingConfig
from imagebuild.core.models import DeploymentContext, build_context
from imagebuild.integrations.cloud.mock import MockCloudProvider


FIXED_NOW = datetime(2026, 10, 19, 14, 5, 33, tzinfo=timezone.utc)
RUN_SUFFIX = "2026-10-19-14-05"


# =============================================================================
# Clock
# =============================================================================
class FakeClock:
    """Sleep double: records requested sleeps and returns immediately."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.sleep(0)

    @property
    def elapsed(self) -> float:
        return sum(self.sleeps)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fresh FakeClock with nothing slept yet."""
    return FakeClock()


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def docker_images_dir(tmp_path: Path) -> Path:
    """A docker_images directory holding a small windows/ build-script tree."""
    root = tmp_path / "docker_images"
    windows = root / "windows"
    (windows / "vs2017").mkdir(parents=True)
    (windows / "build_images.ps1").write_text("docker build -t vs2015 .\n")
    (windows / "vs2017" / "Dockerfile").write_text("FROM mcr.microsoft.com/windows\n")
    return root


@pytest.fixture
def polling() -> PollingConfig:
    """Default polling budgets (30 x 300 s, 60 x 60 s, 600 s boot wait)."""
    return PollingConfig()


@pytest.fixture
def config(docker_images_dir: Path, polling: PollingConfig) -> OrchestratorConfig:
    """Orchestrator configuration pointing at the temporary build scripts."""
    return OrchestratorConfig(docker_images_dir=docker_images_dir, polling=polling)


@pytest.fixture
def context() -> DeploymentContext:
    """DeploymentContext with a fixed run suffix."""
    return build_context(
        "123456789012",
        "us-west-2",
        "awslabs",
        "aws-lc",
        now=lambda: FIXED_NOW,
    )


# =============================================================================
# Cloud Provider
# =============================================================================

@pytest.fixture
def cloud() -> MockCloudProvider:
    """Fresh MockCloudProvider: instance found, agent Online, registry empty."""
    return MockCloudProvider()


@pytest.fixture
def published_cloud(cloud: MockCloudProvider, context: DeploymentContext) -> MockCloudProvider:
    """MockCloudProvider whose registry already lists every expected image."""
    cloud.seed_successful_builds(context.artifact_families())
    return cloud
