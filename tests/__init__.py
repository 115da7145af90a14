"""
Test Suite

Contains unit tests for the ticker.

Structure:
- tests/unit/: Tests for individual components (models, configuration, exchange lifecycle, backends, controller)

Network access is never needed: REST calls are replaced through `_get` and
exchanges are driven by in-memory fake backends.

Uses pytest with pytest-asyncio for testing async functionality.
"""
