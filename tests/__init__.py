"""
imagebuild Test Suite
=======================

Test Organization:
    tests/
    ├── test_core/          → imagebuild.core (config, models, state, exceptions)
    ├── test_integrations/  → imagebuild.integrations.cloud (runner, aws cli, mock)
    ├── test_orchestration/ → polling, provisioner, triggers, watcher, teardown,
    │                         workflow, dispatcher
    ├── test_integration/   → end-to-end runs through the dispatcher
    └── test_cli.py         → click entry point

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_orchestration # Run one layer
"""
