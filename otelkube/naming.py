"""Names of the components (containers, services, ...) built for a collector."""

from __future__ import annotations

from .model import OpenTelemetryCollector


def config_map(otelcol: OpenTelemetryCollector) -> str:
    """Name of the config map used by the collector containers."""
    return f"{otelcol.name}-collector"


def ta_config_map(otelcol: OpenTelemetryCollector) -> str:
    """Name of the config map used by the target allocator."""
    return f"{otelcol.name}-targetallocator"


def config_map_volume() -> str:
    """Name of the config map's volume in the collector pod."""
    return "otc-internal"


def ta_config_map_volume() -> str:
    """Name of the config map's volume in the target allocator pod."""
    return "ta-internal"


def container() -> str:
    """Name of the collector container."""
    return "otc-container"


def ta_container() -> str:
    """Name of the target allocator container."""
    return "ta-container"


def collector(otelcol: OpenTelemetryCollector) -> str:
    """Name of the collector deployment, daemonset or statefulset."""
    return f"{otelcol.name}-collector"


def target_allocator(otelcol: OpenTelemetryCollector) -> str:
    """Name of the target allocator deployment."""
    return f"{otelcol.name}-targetallocator"


def headless_service(otelcol: OpenTelemetryCollector) -> str:
    """Name of the headless service."""
    return f"{service(otelcol)}-headless"


def monitoring_service(otelcol: OpenTelemetryCollector) -> str:
    """Name of the monitoring service."""
    return f"{service(otelcol)}-monitoring"


def service(otelcol: OpenTelemetryCollector) -> str:
    """Name of the collector service."""
    return f"{otelcol.name}-collector"


def ta_service(otelcol: OpenTelemetryCollector) -> str:
    """Name of the target allocator service."""
    return f"{otelcol.name}-targetallocator"


def service_account(otelcol: OpenTelemetryCollector) -> str:
    """Name of the collector service account."""
    return f"{otelcol.name}-collector"