import copy
import yaml
from pathlib import Path
from typing import Optional, Any, Dict, Iterable

from ..errors import ConfigError

DEFAULT_CONFIG: Dict[str, Any] = {
    "kubeconfig": None,
    "source": {
        "context": None,
    },
    "destination": {
        "context": None,
    },
    "namespace_mappings": {},
}


def get_default_config_path() -> Path:
    return Path.home() / ".config" / "rbacmigrate" / "config.yml"


def create_default_config(path: Path) -> None:
    """Creates a default configuration file at the specified path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False)


def deep_merge(source, destination):
    for key, value in source.items():
        if isinstance(value, dict):
            node = destination.setdefault(key, {})
            if not isinstance(node, dict):
                node = destination[key] = {}
            deep_merge(value, node)
        else:
            destination[key] = value
    return destination


def load_config(config_path: Optional[Path]) -> dict[str, Any]:
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path and config_path.exists():
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read configuration {config_path}: {e}")
        if user_config is not None and not isinstance(user_config, dict):
            raise ConfigError(f"Configuration {config_path} must be a mapping")
        if user_config:
            config = deep_merge(user_config, config)
    if not isinstance(config.get("namespace_mappings"), dict):
        raise ConfigError("namespace_mappings must be a mapping of source to destination")
    return config


def parse_namespace_mappings(
    pairs: Iterable[str], base: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Parse ``src=dst`` pairs on top of ``base``.

    Later pairs override earlier ones for the same source namespace.
    """
    mappings = {str(k): str(v) for k, v in (base or {}).items()}
    for pair in pairs:
        source, sep, destination = pair.partition("=")
        if not sep or not source or not destination:
            raise ConfigError(f"Invalid namespace mapping '{pair}', expected source=destination")
        mappings[source] = destination
    return mappings
