"""
Test Suite

Tests for the NPDI Ticket Tracker backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # In-memory repositories and shared fixtures
    ├── unit/               # Services, parsers, mapping and utilities
    └── integration/        # API endpoint tests (TestClient, no MongoDB)

To run tests:
    pytest tests/
    pytest tests/unit/
    pytest tests/integration/
"""
