"""Configuration management for nexuslauncher.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides, including the plain ``PORT``
and ``NEXUS_NODE_ID`` variables used by hosting platforms.
"""

from nexuslauncher.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
