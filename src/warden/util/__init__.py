"""
Utility helpers for Warden.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers and per-session log files. Suppresses noise from
  Discord internals and aiosqlite. Uses prompt_toolkit for console output.
"""
