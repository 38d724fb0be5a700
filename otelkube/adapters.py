"""Reading collector configuration and extracting the Prometheus receiver's config."""

from __future__ import annotations

from typing import Any, Dict

import yaml


class ConfigError(ValueError):
    """The collector configuration is missing a part or cannot be parsed."""


def _no_component(component: str) -> ConfigError:
    return ConfigError(f"no {component} available as part of the configuration")


def _not_a_map(component: str) -> ConfigError:
    return ConfigError(
        f"{component} property in the configuration doesn't contain valid {component}"
    )


def config_from_string(text: str) -> Dict[Any, Any]:
    """Parse a collector configuration written in YAML into a mapping."""
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"couldn't parse the opentelemetry-collector configuration: {exc}"
        ) from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigError(
            "couldn't parse the opentelemetry-collector configuration: "
            "the document is not a mapping"
        )
    return parsed


def config_to_prom_config(text: str) -> Dict[Any, Any]:
    """Return the ``config`` section of the Prometheus receiver in the configuration."""
    config = config_from_string(text)

    steps = (
        ("receivers", "receivers"),
        ("prometheus", "prometheus"),
        ("config", "prometheusConfig"),
    )
    current: Any = config
    for key, component in steps:
        if key not in current:
            raise _no_component(component)
        current = current[key]
        if not isinstance(current, dict):
            raise _not_a_map(component)
    return current