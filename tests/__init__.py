"""
Test suite for Empire Engine

Contains:
- tests/unit/          : Unit tests for individual modules and services
"""
