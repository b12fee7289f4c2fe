"""Test suite for the life expectancy cleaning pipeline.

This package contains tests for the cleaning pipeline including:
- Unit tests for individual modules
- Integration tests for complete cleaning runs
"""
