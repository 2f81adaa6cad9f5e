"""
Test suite for Catalog Sync.

Run all tests: pytest
Run with coverage: pytest --cov=. --cov-report=html
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_csv_catalog_parser.py -v
"""
