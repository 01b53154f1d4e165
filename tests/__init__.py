"""
tensorprep - Test Suite

Test modules mirror the package layout:
- tests/tensorprep/: Tests for core, ops, pipeline, config and I/O modules
- tests/scripts/: Tests for command-line scripts
"""
