"""
Test suite for Line Item Sync.

Run all tests: pytest
Run with coverage: pytest --cov=. --cov-report=html
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_revision_sync_service.py -v
"""
