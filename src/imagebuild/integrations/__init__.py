"""
imagebuild.integrations - External Service Integration Layer
==============================================================

Adapters for the services the orchestrator depends on, each behind an
interface so the real backend and the test double are interchangeable.

Sub-packages:
    cloud/   - Infra toolkit, build service, storage, instances, registry
"""

__all__: list[str] = []
