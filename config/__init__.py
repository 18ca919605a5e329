"""Configuration: environment-backed settings, constants and keyword tables."""
