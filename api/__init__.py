"""
REST API module for Bridge Wrapped.
Provides endpoints for the wrapped slideshow frontend.
"""
