"""
Configuration management for Warden.

- **app_configuration.py**: YAML configuration loader for global settings
  (timeouts, concurrency, regex limits, rule authoring limits, database path).
  Falls back to defaults on missing or malformed config files.
"""
