"""Upgrade steps that bring collector instances up to version 0.24.0.

Each step changes the given instance in place and returns it.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

import yaml

from ..adapters import ConfigError, config_from_string
from ..model import OpenTelemetryCollector


class UpgradeError(Exception):
    """An upgrade step could not be applied to a collector instance."""


class _Dumper(yaml.SafeDumper):
    """Writes strings that need quoting in double quotes rather than single ones."""

    def choose_scalar_style(self):
        style = super().choose_scalar_style()
        return '"' if style == "'" else style


def dump_config(cfg: Dict[Any, Any]) -> str:
    """Render a configuration mapping as block-style YAML with sorted keys."""
    return yaml.dump(
        cfg,
        Dumper=_Dumper,
        default_flow_style=False,
        sort_keys=True,
        allow_unicode=True,
    )


def _quote(value: Any) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def _load(otelcol: OpenTelemetryCollector, target: str) -> Dict[Any, Any]:
    try:
        return config_from_string(otelcol.spec.config)
    except ConfigError as exc:
        raise UpgradeError(
            f"couldn't upgrade to v{target}, failed to parse configuration: {exc}"
        ) from exc


def _store(otelcol: OpenTelemetryCollector, cfg: Dict[Any, Any], target: str) -> None:
    try:
        otelcol.spec.config = dump_config(cfg)
    except yaml.YAMLError as exc:
        raise UpgradeError(
            f"couldn't upgrade to v{target}, failed to marshall back configuration: {exc}"
        ) from exc


def upgrade_0_2_10(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """First version under the current image; the instance needs no changes."""
    if not isinstance(otelcol, OpenTelemetryCollector):
        raise UpgradeError(
            "couldn't upgrade to v0.2.10, expected a collector instance but got "
            f"{type(otelcol).__name__}"
        )
    return otelcol


def upgrade_0_9_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Drop the ``reconnection_delay`` property of the opencensus exporter."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _load(otelcol, "0.9.0")
    exporters = cfg.get("exporters")
    if not isinstance(exporters, dict):
        shown = _quote(exporters) if isinstance(exporters, str) else repr(exporters)
        raise UpgradeError(
            "couldn't upgrade to v0.9.0, failed to extract list of exporters "
            f"from the configuration: {shown}"
        )

    for key, exporter in list(exporters.items()):
        if not "opencensus".startswith(str(key)):
            continue
        if isinstance(exporter, dict):
            exporter.pop("reconnection_delay", None)
            otelcol.status.messages.append(
                "upgrade to v0.9.0 removed the property reconnection_delay "
                f"for exporter {_quote(key)}"
            )
        elif isinstance(exporter, str):
            continue
        else:
            raise UpgradeError(
                f"couldn't upgrade to v0.9.0, the exporter {_quote(key)} is invalid "
                "(neither a string nor map)"
            )

    cfg["exporters"] = exporters
    _store(otelcol, cfg, "0.9.0")
    return otelcol


def upgrade_0_15_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Drop the ``--new-metrics`` and ``--legacy-metrics`` arguments."""
    otelcol.spec.args.pop("--new-metrics", None)
    otelcol.spec.args.pop("--legacy-metrics", None)
    return otelcol


def _existing_attributes(processor: Dict[Any, Any], key: Any) -> List[Dict[str, str]]:
    if "attributes" not in processor:
        return []
    attrs = processor["attributes"]
    if isinstance(attrs, list) and all(
        isinstance(item, dict)
        and all(isinstance(k, str) and isinstance(v, str) for k, v in item.items())
        for item in attrs
    ):
        return attrs
    raise UpgradeError(
        "couldn't upgrade to v0.19.0, the attributes list for processors "
        f"{_quote(key)} couldn't be parsed based on the previous value. "
        f"Type: {type(attrs).__name__}, value: {attrs!r}"
    )


def upgrade_0_19_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Remove ``queued_retry`` processors and migrate ``type``/``labels`` of resource processors."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _load(otelcol, "0.19.0")
    processors = cfg.get("processors")
    if not isinstance(processors, dict):
        return otelcol

    for key, processor in list(processors.items()):
        name = str(key)
        if name.startswith("queued_retry"):
            del processors[key]
            otelcol.status.messages.append(
                f"upgrade to v0.19.0 removed the processor {_quote(key)}"
            )
            continue

        if not name.startswith("resource"):
            continue

        if isinstance(processor, dict):
            if "type" in processor:
                attributes = _existing_attributes(processor, key)
                attributes.append(
                    {
                        "key": "opencensus.type",
                        "value": str(processor["type"]),
                        "action": "upsert",
                    }
                )
                processor["attributes"] = attributes
                del processor["type"]
                otelcol.status.messages.append(
                    "upgrade to v0.19.0 migrated the property 'type' "
                    f"for processor {_quote(key)}"
                )

            if "labels" in processor:
                attributes = _existing_attributes(processor, key)
                labels = processor["labels"]
                if isinstance(labels, dict):
                    for label_key, label_value in labels.items():
                        attributes.append(
                            {
                                "key": str(label_key),
                                "value": str(label_value),
                                "action": "upsert",
                            }
                        )
                processor["attributes"] = attributes
                del processor["labels"]
                otelcol.status.messages.append(
                    "upgrade to v0.19.0 migrated the property 'labels' "
                    f"for processor {_quote(key)}"
                )

            processors[key] = processor
        elif isinstance(processor, str):
            continue
        else:
            raise UpgradeError(
                f"couldn't upgrade to v0.19.0, the processor {_quote(key)} is invalid "
                "(neither a string nor map)"
            )

    cfg["processors"] = processors
    _store(otelcol, cfg, "0.19.0")
    return otelcol


def upgrade_0_24_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Replace the ``port`` of health_check extensions with an ``endpoint``."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _load(otelcol, "0.24.0")
    extensions = cfg.get("extensions")
    if not isinstance(extensions, dict):
        return otelcol

    for key, extension in extensions.items():
        if not str(key).startswith("health_check"):
            continue
        if isinstance(extension, dict):
            if "port" in extension:
                port = extension.pop("port")
                extension["endpoint"] = f"0.0.0.0:{port}"
                otelcol.status.messages.append(
                    "upgrade to v0.24.0 migrated the property 'port' to 'endpoint' "
                    f"for extension {_quote(key)}"
                )
        elif extension is None or isinstance(extension, str):
            continue
        else:
            raise UpgradeError(
                f"couldn't upgrade to v0.24.0, the extension {_quote(key)} is invalid "
                f"(expected string or map but was {type(extension).__name__})"
            )

    _store(otelcol, cfg, "0.24.0")
    return otelcol