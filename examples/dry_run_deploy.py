"""
Dry-Run Deploy Example: Watch a Simulated Run End to End
==========================================================

This example runs the full DEPLOY workflow against the in-memory mock
cloud. The x86 images "arrive" on the third registry check and the Windows
instance's agent comes online on its second ping. Sleeps are shortened so
the whole run finishes in under a second.

Useful for:
    - Seeing the workflow's log narration without an AWS account
    - Trying out polling budgets before changing a real pipeline

Usage:
    python examples/dry_run_deploy.py
"""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from imagebuild.core.config import OrchestratorConfig, PollingConfig
from imagebuild.core.models import LINUX_X86_TAGS, build_context
from imagebuild.integrations.cloud.mock import MockCloudProvider
from imagebuild.log import configure_logging
from imagebuild.orchestration.workflow import DeployWorkflow


async def main() -> None:
    """Run one simulated DEPLOY and print its summary."""
    configure_logging("INFO")

    with tempfile.TemporaryDirectory() as tmp:
        scripts = Path(tmp) / "windows"
        scripts.mkdir()
        (scripts / "build_images.ps1").write_text("docker build .\n")

        config = OrchestratorConfig(
            docker_images_dir=Path(tmp),
            polling=PollingConfig(
                registry_interval_seconds=0.05,
                instance_interval_seconds=0.05,
                instance_boot_wait_seconds=0.1,
            ),
        )
        context = build_context("123456789012", "us-west-2", "awslabs", "aws-lc")

        # Pre-publish aarch and windows; x86 shows up on the third check
        cloud = MockCloudProvider()
        aarch, x86, windows = context.artifact_families()
        cloud.publish_images(aarch.repository, aarch.expected_tags)
        cloud.publish_images(windows.repository, windows.expected_tags)
        cloud.queue_listing(x86.repository, "", "", "\n".join(LINUX_X86_TAGS))
        cloud.queue_ping_status("ConnectionLost", "Online")

        state = await DeployWorkflow(context, cloud, config).run()

    print()
    print("Dry-Run Deploy")
    print("-" * 40)
    print(f"Run      : {state.run_id}")
    print(f"Outcome  : {state.outcome.value if state.outcome else 'n/a'}")
    print(f"Teardown : {state.teardown_count}x")
    print(f"Builds   : {', '.join(state.build_ids)}")
    print(f"Command  : {state.command_id}")
    print(f"States   : {' → '.join(s.value for s in state.visited_states)}")
    print(f"Calls    : {len(cloud.call_history)} cloud calls")


if __name__ == "__main__":
    asyncio.run(main())
