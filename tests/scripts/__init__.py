"""Tests for command-line scripts."""
