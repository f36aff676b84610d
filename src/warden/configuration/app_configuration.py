from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from warden.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

# Discord caps member timeouts at 28 days.
PLATFORM_MAX_TIMEOUT_MS = 28 * 24 * 60 * 60 * 1000


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    dictionary-like access helpers plus typed shortcuts for the automod,
    rule-limit and database sections. Missing keys fall back to defaults so
    an absent or broken file never stops the bot from starting.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    def _int(self, section: str, key: str, default: int) -> int:
        value = self._section(section).get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(
                "[APP CONFIGURATION] Invalid value %r for %s.%s, using %s",
                value, section, key, default,
            )
            return default

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache (shallow reference). Callers
        should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # Automod shortcuts
    # --------------------------
    @property
    def default_timeout_ms(self) -> int:
        """Timeout applied when a TIMEOUT rule has no explicit duration (60s)."""
        return self._int("automod", "default_timeout_ms", 60_000)

    @property
    def max_timeout_ms(self) -> int:
        """Upper bound for any timeout. Never exceeds the platform maximum."""
        return min(self._int("automod", "max_timeout_ms", PLATFORM_MAX_TIMEOUT_MS), PLATFORM_MAX_TIMEOUT_MS)

    @property
    def escalation_timeout_ms(self) -> int:
        """Timeout applied by an escalation tier without its own duration (1h)."""
        return self._int("automod", "escalation_timeout_ms", 60 * 60 * 1000)

    @property
    def max_concurrent_events_per_guild(self) -> int:
        """How many events of one guild may be enforced at the same time."""
        return max(1, self._int("automod", "max_concurrent_events_per_guild", 8))

    @property
    def max_regex_length(self) -> int:
        return self._int("automod", "max_regex_length", 1000)

    @property
    def max_regex_input_length(self) -> int:
        """Content longer than this is truncated before pattern matching."""
        return self._int("automod", "max_regex_input_length", 10_000)

    @property
    def config_cache_ttl_seconds(self) -> int:
        return self._int("automod", "config_cache_ttl_seconds", 60)

    @property
    def rules_cache_ttl_seconds(self) -> int:
        return self._int("automod", "rules_cache_ttl_seconds", 60)

    # --------------------------
    # Rule authoring limits
    # --------------------------
    @property
    def max_patterns_per_rule(self) -> int:
        return self._int("limits", "max_patterns_per_rule", 50)

    @property
    def max_actions_per_rule(self) -> int:
        return self._int("limits", "max_actions_per_rule", 10)

    @property
    def max_id_array_length(self) -> int:
        return self._int("limits", "max_id_array_length", 100)

    @property
    def max_rule_name_length(self) -> int:
        return self._int("limits", "max_rule_name_length", 100)

    # --------------------------
    # Database
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Return the SQLite database path (default ``./data/warden.db``)."""
        value = self._section("database").get("path") or "./data/warden.db"
        return Path(str(value)).resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
