"""
Test Suite
==========

Test Categories:
- unit: Unit tests for settings, cancellation, the screenshotter and the HTTP endpoint
"""
