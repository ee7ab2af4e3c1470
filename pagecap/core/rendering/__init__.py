"""
Rendering Module
===============

PNG capture of live web pages with browser automation.
"""
