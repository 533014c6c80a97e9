"""
zipcat Configuration
Single source of truth for all settings.
Load once at startup, pass to all components.
"""
import codecs
import os
import json
from pathlib import Path
from .utils.logger import logger


# Default config values
DEFAULTS = {
    "reading": {
        "chunk_size": 1024,
        "verify_crc": True,
        "name_encoding": "cp437"
    },
    "extraction": {
        "overwrite": False,
        "preserve_permissions": True
    }
}

ENV_CONFIG_PATH = "ZIPCAT_CONFIG"


class ZipcatConfig:
    def __init__(self, config_path: str = None):
        self._config = self._deep_copy(DEFAULTS)

        if config_path:
            self.config_path = Path(config_path)
        elif os.environ.get(ENV_CONFIG_PATH):
            self.config_path = Path(os.environ[ENV_CONFIG_PATH])
        else:
            # Look for config in project root
            self.config_path = Path(__file__).parent.parent / 'zipcat.config.json'

        if self.config_path.exists():
            self._load()
        else:
            logger.debug(f"No config file found at {self.config_path} — using defaults")

    def _load(self):
        """Load and merge config file over defaults"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ValueError("top level must be an object")
            self._deep_merge(self._config, user_config)
            logger.debug(f"Loaded config from {self.config_path}")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file: {e} — using defaults")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config: {e} — using defaults")

    def save(self, path: str = None):
        """Save current config to file"""
        out_path = Path(path) if path else self.config_path
        with open(out_path, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2)
        logger.info(f"Config saved to {out_path}")

    def get(self, *keys, default=None):
        """
        Get a nested config value by key path.
        e.g. config.get('reading', 'chunk_size')
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys_and_value):
        """
        Set a nested config value.
        e.g. config.set('extraction', 'overwrite', True)
        """
        *keys, value = keys_and_value
        target = self._config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def chunk_size(self) -> int:
        size = self.get('reading', 'chunk_size', default=1024)
        return size if isinstance(size, int) and size > 0 else 1024

    @property
    def verify_crc(self) -> bool:
        return bool(self.get('reading', 'verify_crc', default=True))

    @property
    def name_encoding(self) -> str:
        encoding = self.get('reading', 'name_encoding', default='cp437')
        try:
            codecs.lookup(encoding)
        except (LookupError, TypeError):
            logger.warning(f"Unknown name encoding {encoding!r}, using cp437")
            return 'cp437'
        return encoding

    @property
    def overwrite(self) -> bool:
        return bool(self.get('extraction', 'overwrite', default=False))

    @property
    def preserve_permissions(self) -> bool:
        return bool(self.get('extraction', 'preserve_permissions', default=True))

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _deep_copy(d: dict) -> dict:
        import copy
        return copy.deepcopy(d)

    @staticmethod
    def _deep_merge(base: dict, override: dict):
        """Merge override into base recursively — modifies base in place"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                ZipcatConfig._deep_merge(base[key], value)
            else:
                base[key] = value


# Singleton — import this everywhere
config = ZipcatConfig()

__all__ = ["ZipcatConfig", "config"]
