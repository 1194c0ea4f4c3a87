"""Tests for contracts package.

Unit tests for the immutable schema model, materialized records and the
structured error taxonomy.
"""
