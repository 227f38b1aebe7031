"""Layered relay configuration: defaults < env < config file < runtime overrides."""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

logger = logging.getLogger(__name__)

_LOADERS: dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def load_config_file(path: Optional[Path]) -> dict[str, Any]:
    """Flat mapping of setting name -> value from a YAML/JSON file.

    A missing, unreadable or malformed file contributes nothing; the relay then runs on
    env and defaults, and the problem is logged.
    """
    if path is None or not path.exists():
        return {}
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        logger.warning("Ignoring config file %s: expected .yaml, .yml or .json", path)
        return {}
    try:
        data = loader(path.read_text())
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is %s, not a mapping", path, type(data).__name__)
        return {}
    return data


class ConfigStore:
    """Owns the current Settings snapshot for the process.

    The snapshot is rebuilt from all layers on reload; `update` pushes runtime overrides
    that survive reloads until `clear_overrides`. A rebuild that fails validation leaves the
    previous snapshot in place.
    """

    def __init__(self, settings_cls: type, config_file_path: Optional[str] = None):
        self._settings_cls = settings_cls
        self._path = Path(config_file_path).expanduser().resolve() if config_file_path else None
        self._overrides: dict[str, Any] = {}
        self._snapshot: Optional[Any] = None
        self._lock = threading.RLock()

    @property
    def config_file(self) -> Optional[Path]:
        return self._path

    @property
    def overrides(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._overrides)

    def _compose(self, extra: Optional[dict[str, Any]] = None) -> Any:
        # Constructor kwargs win over env in pydantic-settings, so env is resolved first.
        layers = self._settings_cls().model_dump()
        layers.update(load_config_file(self._path))
        layers.update(self._overrides)
        layers.update(extra or {})
        return self._settings_cls(**layers)

    def load_initial(self) -> None:
        with self._lock:
            self._snapshot = self._compose()
        if self._path and self._path.exists():
            logger.info("Config file applied over env: %s", self._path)

    def get_settings(self) -> Any:
        with self._lock:
            if self._snapshot is None:
                self.load_initial()
            return self._snapshot

    def update(self, overrides: dict[str, Any]) -> bool:
        """Apply runtime overrides. Returns False (and changes nothing) if they do not validate."""
        with self._lock:
            try:
                snapshot = self._compose(overrides)
            except ValueError as e:
                logger.warning("Rejected config overrides %s: %s", sorted(overrides), e)
                return False
            self._overrides.update(overrides)
            self._snapshot = snapshot
            return True

    def reload_from_file(self) -> None:
        with self._lock:
            try:
                self._snapshot = self._compose()
            except ValueError as e:
                logger.warning("Config reload rejected, keeping current settings: %s", e)

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides.clear()
            self._snapshot = self._compose()
