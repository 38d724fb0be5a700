"""Bringing collector instances up to the current version, one step at a time."""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

import semver

from ..model import OpenTelemetryCollector
from .legacy import (
    UpgradeError,
    upgrade_0_2_10,
    upgrade_0_9_0,
    upgrade_0_15_0,
    upgrade_0_19_0,
    upgrade_0_24_0,
)
from .recent import upgrade_0_31_0, upgrade_0_36_0, upgrade_0_38_0

logger = logging.getLogger(__name__)

MANAGED_BY_LABELS = {"app.kubernetes.io/managed-by": "opentelemetry-operator"}

_VERSION_RE = re.compile(
    r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
)


def _parse_version(text: str) -> semver.Version:
    """Parse a version, allowing a leading ``v`` and a missing minor or patch part."""
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise UpgradeError(f"invalid semantic version: {text!r}")
    major, minor, patch, prerelease, build = match.groups()
    return semver.Version(
        int(major), int(minor or 0), int(patch or 0), prerelease=prerelease, build=build
    )


@dataclass(frozen=True)
class VersionStep:
    """A known collector version and the change that brings an instance to it."""

    version: semver.Version
    upgrade: Callable[[OpenTelemetryCollector], OpenTelemetryCollector]

    def __str__(self) -> str:
        return str(self.version)


VERSIONS: List[VersionStep] = [
    VersionStep(_parse_version("0.2.10"), upgrade_0_2_10),
    VersionStep(_parse_version("0.9.0"), upgrade_0_9_0),
    VersionStep(_parse_version("0.15.0"), upgrade_0_15_0),
    VersionStep(_parse_version("0.19.0"), upgrade_0_19_0),
    VersionStep(_parse_version("0.24.0"), upgrade_0_24_0),
    VersionStep(_parse_version("0.31.0"), upgrade_0_31_0),
    VersionStep(_parse_version("0.36.0"), upgrade_0_36_0),
    VersionStep(_parse_version("0.38.0"), upgrade_0_38_0),
]

# The latest version that needs an upgrade step, not necessarily the latest known one.
LATEST = VERSIONS[-1]


class UpgradeClient:
    """An in-memory store of collector resources; subclass to use another store."""

    def __init__(self, collectors: Iterable[OpenTelemetryCollector] = ()) -> None:
        self._items: List[OpenTelemetryCollector] = [copy.deepcopy(c) for c in collectors]

    def list_collectors(self, labels: Dict[str, str]) -> List[OpenTelemetryCollector]:
        """Return every collector carrying all the given labels."""
        return [
            copy.deepcopy(c)
            for c in self._items
            if all(c.labels.get(key) == value for key, value in labels.items())
        ]

    def _find(self, otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
        for stored in self._items:
            if stored.namespace == otelcol.namespace and stored.name == otelcol.name:
                return stored
        raise LookupError(
            f'opentelemetrycollectors.opentelemetry.io "{otelcol.name}" not found'
        )

    def patch(self, original: OpenTelemetryCollector, upgraded: OpenTelemetryCollector) -> None:
        """Store the metadata and spec of ``upgraded``; the stored status is kept.

        Like a server response, ``upgraded`` gets the stored status back.
        """
        stored = self._find(original)
        stored.metadata = copy.deepcopy(upgraded.metadata)
        stored.spec = copy.deepcopy(upgraded.spec)
        upgraded.status = copy.deepcopy(stored.status)

    def patch_status(
        self, original: OpenTelemetryCollector, upgraded: OpenTelemetryCollector
    ) -> None:
        """Store the status of ``upgraded``."""
        stored = self._find(original)
        stored.status = copy.deepcopy(upgraded.status)


def managed_instance(
    otelcol: OpenTelemetryCollector, current_version: str
) -> OpenTelemetryCollector:
    """Return a copy of the instance brought up to ``current_version``.

    Raises ``UpgradeError`` if the instance's version cannot be parsed or a step fails.
    """
    otelcol = copy.deepcopy(otelcol)

    # A new instance is assumed to be up to date already.
    if not otelcol.status.version:
        return otelcol

    try:
        instance_version = _parse_version(otelcol.status.version)
    except UpgradeError:
        logger.error(
            "failed to parse version for OpenTelemetry Collector instance %s/%s: %s",
            otelcol.namespace,
            otelcol.name,
            otelcol.status.version,
        )
        raise

    if instance_version > LATEST.version:
        logger.info(
            "skipping upgrade for OpenTelemetry Collector instance %s/%s, as its version %s "
            "is newer than our latest version %s",
            otelcol.namespace,
            otelcol.name,
            otelcol.status.version,
            LATEST,
        )
        return otelcol

    for step in VERSIONS:
        if not step.version > instance_version:
            continue
        try:
            otelcol = step.upgrade(otelcol)
        except Exception:
            logger.error(
                "failed to upgrade managed otelcol instance %s/%s to %s",
                otelcol.namespace,
                otelcol.name,
                step,
            )
            raise
        otelcol.status.version = str(step)
        logger.debug("step upgrade of %s/%s to %s", otelcol.namespace, otelcol.name, step)

    otelcol.status.version = current_version
    logger.debug(
        "final version of %s/%s: %s", otelcol.namespace, otelcol.name, otelcol.status.version
    )
    return otelcol


def managed_instances(client: UpgradeClient, current_version: str) -> None:
    """Upgrade every collector managed by the operator and store the changes."""
    logger.info("looking for managed instances to upgrade")

    try:
        items = client.list_collectors(dict(MANAGED_BY_LABELS))
    except Exception as exc:
        raise UpgradeError(f"failed to list: {exc}") from exc

    for original in items:
        try:
            upgraded = managed_instance(original, current_version)
        except Exception:
            # Already logged; move on to the next instance.
            continue

        if upgraded == original:
            continue

        # Patching the resource overrides the status, so keep it to restore it later.
        status = copy.deepcopy(upgraded.status)
        try:
            client.patch(original, upgraded)
        except Exception:
            logger.exception(
                "failed to apply changes to instance %s/%s", upgraded.namespace, upgraded.name
            )
            continue

        upgraded.status = status
        try:
            client.patch_status(original, upgraded)
        except Exception:
            logger.exception(
                "failed to apply changes to the status object of instance %s/%s",
                upgraded.namespace,
                upgraded.name,
            )
            continue

        logger.info(
            "instance %s/%s upgraded to version %s",
            upgraded.namespace,
            upgraded.name,
            upgraded.status.version,
        )

    if not items:
        logger.info("no instances to upgrade")