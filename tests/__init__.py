"""
CloudRelease Test Suite
=======================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/           → Tests for cloudrelease.core (config, models, errors, deadline)
    ├── test_integrations/   → Tests for cloudrelease.integrations (boto3 adapters, in-memory fakes)
    ├── test_credentials/    → Tests for cloudrelease.credentials (chain, request context)
    ├── test_registry/       → Tests for cloudrelease.registry (policies, reconciler)
    ├── test_infrastructure/ → Tests for cloudrelease.infrastructure (state, cache, bundles)
    ├── test_handlers/       → Tests for cloudrelease.handlers (the three hooks)
    ├── test_facade.py       → End-to-end pipeline runs through ReleasePlugin
    └── conftest.py          → Shared pytest fixtures

Running Tests:
    pytest                           # Run all tests
    pytest tests/test_registry/      # Run only registry tests
    pytest --cov=cloudrelease        # Run with coverage report
"""
