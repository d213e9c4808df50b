"""Configuration module for the user administration API."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
