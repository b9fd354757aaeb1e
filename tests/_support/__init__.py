"""Test support utilities for ibmdb-adapter tests."""
