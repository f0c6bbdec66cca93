"""
Spec Diff Engine Tests Package
==============================
Test suite for missing-line detection and structural merge.

Run all tests: python3 -m pytest tests/engine/ -v
Run specific: python3 -m pytest tests/engine/test_merger.py -v
"""

__version__ = "1.0.0"
