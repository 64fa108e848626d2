"""
imagebuild - Multi-target Build-Image Orchestrator
====================================================

Provisions ephemeral CI infrastructure, starts the Linux and Windows Docker
image builds, waits for every expected image to reach the registry, and
always tears the ephemeral build stacks down again.

    Provision  →  Trigger builds  →  Watch registry  →  Tear down
    (CDK)         (CodeBuild, SSM)   (ECR)              (CDK)

Architecture Layers (top to bottom):
    1. CLI            - click entry point, logging setup
    2. Orchestration  - Dispatcher, Deploy Workflow, triggers, watcher
    3. Integrations   - Cloud providers (AWS CLI, mock)
    4. Core           - Config, models, state, exceptions

Quick Start:
    $ imagebuild 123456789012 us-west-2 awslabs aws-lc DEPLOY
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
