"""Loading of ``config.yaml`` over built-in defaults."""
import logging
import os

import yaml

from protocol.errors import ConfigError

DEFAULTS = {
    "key_path": None,
    "listen_host": "0.0.0.0",
    "listen_port": 0,
    "advertise_host": None,
    "service_type": "_topicchat._tcp.local.",
    "connect_timeout": 5.0,
    "max_message_bytes": 64 * 1024,
    "seen_cache_size": 1024,
    "announce_on_discovery": True,
    "log_level": "WARNING",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_config(path=None, **overrides):
    """Read ``path`` (if it exists), apply ``overrides`` and validate."""
    config = dict(DEFAULTS)
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{path} must contain a mapping")
        unknown = set(loaded) - set(DEFAULTS)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        config.update(loaded)
        logging.getLogger(__name__).debug(f"Loaded config from {path}")
    config.update({k: v for k, v in overrides.items() if v is not None})
    validate(config)
    return config


def validate(config):
    port = config["listen_port"]
    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
        raise ConfigError(f"listen_port must be between 0 and 65535, got {port!r}")
    timeout = config["connect_timeout"]
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
        raise ConfigError(f"connect_timeout must be positive, got {timeout!r}")
    for key in ("max_message_bytes", "seen_cache_size"):
        value = config[key]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    level = str(config["log_level"]).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {config['log_level']!r}")
    config["log_level"] = level
    if not str(config["service_type"]).endswith("._tcp.local."):
        raise ConfigError(f"service_type must end with '._tcp.local.', got {config['service_type']!r}")
