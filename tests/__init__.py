"""
Test Suite

Contains unit tests for the backend system.

Structure:
- tests/unit/: Tests for individual components (throttle, session, chunking,
  option chain analytics, symbol parsing, endpoint modules, REST API)

Uses pytest with pytest-asyncio for testing async functionality. The raw HTTP
transport is mocked, so no test touches the network.
"""
