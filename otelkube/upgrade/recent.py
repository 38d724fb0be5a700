"""Upgrade steps that bring collector instances from 0.24.0 up to version 0.38.0.

Each step changes the given instance in place and returns it.
"""

from __future__ import annotations

import json
from typing import Any, Dict

import yaml

from ..adapters import ConfigError, config_from_string
from ..model import OpenTelemetryCollector
from .legacy import UpgradeError, dump_config

_TLS_KEYS = frozenset(
    {
        "ca_file",
        "cert_file",
        "key_file",
        "min_version",
        "max_version",
        "insecure",
        "insecure_skip_verify",
        "server_name_override",
    }
)

_LOGGING_ARGS = ("--log-level", "--log-profile", "--log-format")


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


def upgrade_0_31_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Drop the ``metrics_schema`` field of influxdb receivers."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _load(otelcol, "0.31.0")
    receivers = cfg.get("receivers")
    if not isinstance(receivers, dict):
        return otelcol

    for key, receiver in receivers.items():
        if not str(key).startswith("influxdb"):
            continue
        if not isinstance(receiver, dict):
            return otelcol
        for field_key in list(receiver):
            if str(field_key).startswith("metrics_schema"):
                del receiver[field_key]
                otelcol.status.messages.append(
                    "upgrade to v0.31.0 dropped the 'metrics_schema' field "
                    f"from {_quote(key)} receiver"
                )

    cfg["receivers"] = receivers
    _store(otelcol, cfg, "0.31.0")
    return otelcol


def upgrade_0_36_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Rename ``tls_settings`` of otlp receivers and move otlp exporters' TLS fields under ``tls``."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _load(otelcol, "0.36.0")

    receivers = cfg.get("receivers")
    if not isinstance(receivers, dict):
        return otelcol

    for name, receiver in receivers.items():
        if not str(name).startswith("otlp"):
            continue
        if not isinstance(receiver, dict):
            return otelcol
        if "protocols" not in receiver:
            continue
        protocols = receiver["protocols"]
        if not isinstance(protocols, dict):
            return otelcol
        for protocol, settings in protocols.items():
            if protocol not in ("grpc", "http"):
                continue
            if not isinstance(settings, dict):
                return otelcol
            if "tls_settings" in settings:
                settings["tls"] = settings.pop("tls_settings")
                otelcol.status.messages.append(
                    "upgrade to v0.36.0 has changed the tls_settings field name to tls "
                    f"in {protocol} protocol of {name} receiver"
                )
    cfg["receivers"] = receivers

    exporters = cfg.get("exporters")
    if not isinstance(exporters, dict):
        return otelcol

    for name, exporter in exporters.items():
        if not str(name).startswith("otlp"):
            continue
        if not isinstance(exporter, dict):
            return otelcol
        if not exporter:
            continue
        tls = {key: exporter.pop(key) for key in list(exporter) if key in _TLS_KEYS}
        exporter["tls"] = tls
        otelcol.status.messages.append(
            "upgrade to v0.36.0 move tls config i.e. ca_file, key_file, cert_file, "
            f"min_version, max_version to tls.* in {name} exporter"
        )
    cfg["exporters"] = exporters

    _store(otelcol, cfg, "0.36.0")
    return otelcol


def _ensure_mapping(parent: Dict[Any, Any], key: str) -> Dict[Any, Any]:
    value = parent.get(key)
    if not isinstance(value, dict):
        value = {}
        parent[key] = value
    return value


def upgrade_0_38_0(otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
    """Move the deprecated logging arguments into ``service.telemetry.logs``."""
    args = otelcol.spec.args
    if not args:
        return otelcol

    found = {key: args.pop(key) for key in list(args) if key in _LOGGING_ARGS}
    if not found:
        return otelcol

    cfg = _load(otelcol, "0.38.0")
    service = _ensure_mapping(cfg, "service")
    telemetry = _ensure_mapping(service, "telemetry")
    logs = _ensure_mapping(telemetry, "logs")

    # Logging settings already in the configuration win over the arguments.
    if not logs:
        if "--log-level" in found:
            logs["level"] = found["--log-level"]
        if "--log-profile" in found:
            logs["development"] = True
        if "--log-format" in found:
            logs["encoding"] = found["--log-format"]

    cfg["service"] = service
    _store(otelcol, cfg, "0.38.0")

    dropped = "[" + " ".join(sorted(found)) + "]"
    otelcol.status.messages.append(
        "upgrade to v0.38.0 dropped the deprecated logging arguments "
        f"i.e. {dropped} from otelcol custom resource otelcol.spec.args and "
        "adding them to otelcol.spec.config.service.telemetry.logs, "
        "if no logging parameters are configured already."
    )
    return otelcol