"""
Test suite for rv-prover

Contains:
- tests/unit/          : Unit tests for individual modules
"""
