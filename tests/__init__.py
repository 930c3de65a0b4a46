"""
Test Suite

Contains unit and integration tests for the real-time data client.

Structure:
- tests/unit/: Tests for individual components (schemas, commands, connection loop, services)
- tests/unit/test_ws_integration.py: End-to-end tests against a local aiohttp websocket server

Uses pytest with pytest-asyncio for testing async functionality.
"""
