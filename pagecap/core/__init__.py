"""
Core Logic
==========

Modules:
- rendering: browser lifetime and screenshot capture
- cancellation: cancellation tokens for in-flight captures
- errors: screenshot failure taxonomy
"""
