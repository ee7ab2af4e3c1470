"""
PageCap
=======

HTTP service that renders web pages in a headless browser and returns PNG
screenshots.

This package provides:
- FastAPI endpoint with parameter normalization
- Browser automation with Playwright
- Cancellation of in-flight captures on disconnect, deadline and shutdown
"""

__version__ = "1.0.0"
