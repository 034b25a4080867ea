"""Test suite for booqable.

Test Structure:
- unit/: Unit tests for individual components, HTTP mocked with httpx.MockTransport
  - auth/: API key, OAuth and single use token authentication
  - config/: Options and process-wide defaults
  - http/: Request pipeline, retries and pagination
  - utils/: Logging setup
- conftest.py: Shared fixtures (mock clients, JSON:API responses, clean environment)
"""
