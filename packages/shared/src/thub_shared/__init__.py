"""Shared building blocks for the THub client platform.

Provides the Pydantic models exchanged with the THub REST API, the formatter
utilities used across the portal, key-case mapping helpers, and client settings.
"""
