"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Service settings and environment configuration
- logging: Structured logging configuration
"""
