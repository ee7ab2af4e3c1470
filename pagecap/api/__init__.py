"""
FastAPI REST Endpoints
======================

Endpoints:
- GET /: landing page, or PNG screenshot of ``url``
"""
