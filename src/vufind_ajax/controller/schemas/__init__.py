"""API schemas for response serialization.

Provides Pydantic models for the AJAX envelope and the health endpoint.
"""
