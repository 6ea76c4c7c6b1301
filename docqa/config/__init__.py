"""Configuration module -- exports Settings."""

from docqa.config.settings import Settings

__all__ = ["Settings"]
