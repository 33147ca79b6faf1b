"""Configuration: static constants and environment settings."""
