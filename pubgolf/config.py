"""
Configuration management for the pub golf scoreboard.
Supports both JSON file configuration and environment variable overrides.
"""

import copy
import json
import os
from pathlib import Path
from typing import Dict, Any

from .logger import get_logger

logger = get_logger(__name__)


class GolfConfig:
    """Configuration management for the pub golf scoreboard."""

    DEFAULT_CONFIG = {
        "event_name": "Pub Golf",
        "features": {
            "live_updates": True,
            "adjustment_history": True,
        },
        "leaderboard": {
            "max_entries": 100,
            "watch_penalties": True,  # reload on adjustment inserts as well as scores
        },
        "adjustments": {
            "min_points": 1,
            "max_reason_length": 500,
        },
        "registration": {
            "max_players_per_team": 10,
            "max_team_name_length": 60,
        },
        "auth": {
            # token -> {"id": ..., "role": ...}
            "users": {},
        },
    }

    def __init__(
        self,
        config_path: str = "pubgolf_config.json",
    ) -> None:
        """Initialize configuration from file, environment variables, or defaults."""
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self._apply_env_overrides()
        self._validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from JSON file or create default.

        @return: Dictionary containing the loaded configuration
        """
        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    loaded_config = json.load(f)

                # Merge with defaults to ensure all keys exist
                config = copy.deepcopy(self.DEFAULT_CONFIG)
                self._deep_merge(config, loaded_config)
                return config

            except (json.JSONDecodeError, IOError) as e:
                logger.error("Error loading config from %s: %s", self.config_path, e)
                logger.warning("Using default configuration")
                return copy.deepcopy(self.DEFAULT_CONFIG)
        else:
            self._create_default_config()
            return copy.deepcopy(self.DEFAULT_CONFIG)

    def _deep_merge(
        self,
        base_dict: Dict[str, Any],
        update_dict: Dict[str, Any],
    ) -> None:
        """
        Recursively merge dictionaries.

        @param base_dict: Base dictionary to merge into
        @param update_dict: Dictionary with updates to merge
        """
        for key, value in update_dict.items():
            if (
                key in base_dict
                and isinstance(base_dict[key], dict)
                and isinstance(value, dict)
            ):
                self._deep_merge(base_dict[key], value)
            else:
                base_dict[key] = value

    def _apply_env_overrides(self) -> None:
        """
        Apply environment variable overrides to configuration.

        Environment variables follow the pattern: SECTION_KEY (e.g., EVENT_NAME, LIVE_UPDATES)
        """
        env_mappings = {
            "EVENT_NAME": ("event_name",),

            # Features
            "LIVE_UPDATES": ("features", "live_updates"),
            "ADJUSTMENT_HISTORY": ("features", "adjustment_history"),

            # Leaderboard
            "MAX_LEADERBOARD_ENTRIES": ("leaderboard", "max_entries"),
            "WATCH_PENALTIES": ("leaderboard", "watch_penalties"),

            # Adjustments
            "MIN_ADJUSTMENT_POINTS": ("adjustments", "min_points"),
            "MAX_REASON_LENGTH": ("adjustments", "max_reason_length"),

            # Registration
            "MAX_PLAYERS_PER_TEAM": ("registration", "max_players_per_team"),
            "MAX_TEAM_NAME_LENGTH": ("registration", "max_team_name_length"),
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                converted_value = self._convert_env_value(env_value)
                self._set_nested_config(config_path, converted_value)

    def _convert_env_value(self, value: str) -> Any:
        """
        Convert environment variable string to appropriate type.

        @param value: String value from environment variable
        @return: Converted value (bool, int, or string)
        """
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        return value

    def _set_nested_config(self, path: tuple, value: Any) -> None:
        """
        Set a nested configuration value using a path tuple.

        @param path: Tuple representing the nested path (e.g., ("features", "live_updates"))
        @param value: Value to set
        """
        current = self.config
        for key in path[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def _create_default_config(self) -> None:
        """
        Create a default configuration file.

        Writes the default configuration to the configured file path.
        """
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self.DEFAULT_CONFIG, f, indent=2, ensure_ascii=False)
            logger.info("Created default configuration file: %s", self.config_path)
        except IOError as e:
            logger.warning("Could not create config file %s: %s", self.config_path, e)

    def _validate_positive(self, section: str, key: str) -> None:
        value = self.config[section][key]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            default = self.DEFAULT_CONFIG[section][key]
            logger.warning("Invalid %s.%s, using %s", section, key, default)
            self.config[section][key] = default

    def _validate_config(self) -> None:
        """
        Validate configuration values.

        Checks configuration values for validity and sets defaults for invalid values.
        """
        self._validate_positive("leaderboard", "max_entries")
        self._validate_positive("adjustments", "min_points")
        self._validate_positive("adjustments", "max_reason_length")
        self._validate_positive("registration", "max_players_per_team")
        self._validate_positive("registration", "max_team_name_length")

        if not isinstance(self.config["auth"]["users"], dict):
            logger.warning("Invalid auth.users, expected a token mapping")
            self.config["auth"]["users"] = {}

    def get(
        self,
        *keys: str,
    ) -> Any:
        """
        Get nested configuration value using dot notation.

        @param keys: Variable arguments representing nested keys to traverse
        @return: Configuration value at the specified path, None if not found
        """
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value

    def is_feature_enabled(
        self,
        feature_name: str,
    ) -> bool:
        """
        Check if a feature is enabled.

        @param feature_name: Name of the feature to check
        @return: True if feature is enabled, False otherwise
        """
        return self.get("features", feature_name) is True

    def watched_tables(self) -> tuple:
        """
        Get the tables whose changes trigger a leaderboard reload.

        @return: Tuple of table names, always including "scores"
        """
        if self.get("leaderboard", "watch_penalties"):
            return ("scores", "penalties")
        return ("scores",)

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        @return: True if saved successfully, False on error
        """
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self.config, f, indent=2, ensure_ascii=False)
            return True
        except IOError as e:
            logger.warning("Could not save config file %s: %s", self.config_path, e)
            return False
