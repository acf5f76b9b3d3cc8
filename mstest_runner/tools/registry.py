"""
Installation Registry
=====================
Holds the configured MSTest installations and resolves them by name.

Storage:
    YAML file (PyYAML safe_load / safe_dump):

        schema_version: 1
        installations:
          - name: VS2019
            home: C:\\Program Files\\...\\MSTest.exe
            default_args: /detail:errormessage

Concurrency:
    Copy-on-write. set_installations() replaces the whole tuple in one
    assignment, so readers always see a complete snapshot without locking.
    Writers are serialised so the file and the snapshot stay in step.

Schema upgrades:
    Files written before schema_version existed (version 0) are upgraded once
    at load time by upgrade_registry_data(); the live model never carries
    legacy fields.
"""
import os
import logging
import threading
from typing import Any, Iterable, Optional, Sequence

import yaml

from mstest_runner.core.exceptions import RegistryError
from mstest_runner.models.tool_installation import ToolInstallation

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------
def resolve(tool_name: Optional[str],
            installations: Iterable[ToolInstallation]) -> Optional[ToolInstallation]:
    """
    Find the installation called ``tool_name``.

    Returns
    -------
    ToolInstallation | None
        First exact name match. None when ``tool_name`` is unset or no entry
        matches; callers then fall back to mstest.exe on the search path.
    """
    if tool_name is None:
        return None
    for installation in installations:
        if installation.name == tool_name:
            return installation
    return None


# ---------------------------------------------------------------------------
# Schema upgrade
# ---------------------------------------------------------------------------
def _upgrade_v0(data: Any) -> dict:
    # v0 stored a bare list, and the home path under "path_to_mstest"
    entries = data if isinstance(data, list) else (data or {}).get("installations", [])
    upgraded = []
    for entry in entries:
        entry = dict(entry)
        legacy_path = entry.pop("path_to_mstest", None)
        if legacy_path is not None and not entry.get("home"):
            entry["home"] = legacy_path
        upgraded.append(entry)
    return {"schema_version": 1, "installations": upgraded}


_UPGRADES = {
    0: _upgrade_v0,
}


def upgrade_registry_data(data: Any) -> dict:
    """Bring raw registry data up to CURRENT_SCHEMA_VERSION."""
    if data is None:
        return {"schema_version": CURRENT_SCHEMA_VERSION, "installations": []}

    version = data.get("schema_version", 0) if isinstance(data, dict) else 0
    if version > CURRENT_SCHEMA_VERSION:
        raise RegistryError(
            f"Registry schema version {version} is newer than supported "
            f"version {CURRENT_SCHEMA_VERSION}"
        )

    while version < CURRENT_SCHEMA_VERSION:
        logger.info("Upgrading installation registry from schema version %d", version)
        data = _UPGRADES[version](data)
        version = data["schema_version"]
    return data


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
class InstallationRegistry:
    """
    Ordered collection of MSTest installations with optional YAML persistence.

    Usage:
        registry = InstallationRegistry("mstest_installations.yaml")
        registry.load()
        installation = resolve("VS2019", registry.get_installations())
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        self._installations: tuple[ToolInstallation, ...] = ()
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Optional[str]:
        return self._path

    def get_installations(self) -> tuple[ToolInstallation, ...]:
        return self._installations

    def set_installations(self, installations: Sequence[ToolInstallation]) -> None:
        """Replace all installations and persist them before returning."""
        snapshot = tuple(installations)
        with self._write_lock:
            if self._path:
                self._save(snapshot)
            self._installations = snapshot
        logger.info("Installation registry updated | count=%d", len(snapshot))

    def load(self) -> None:
        """Read the registry file. A missing file means no installations."""
        if not self._path or not os.path.exists(self._path):
            logger.info("No installation registry at %s; starting empty", self._path)
            self._installations = ()
            return

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise RegistryError(f"Cannot read installation registry {self._path}: {e}") from e

        try:
            data = upgrade_registry_data(raw)
            snapshot = tuple(ToolInstallation(**entry) for entry in data.get("installations", []))
        except (TypeError, ValueError) as e:
            raise RegistryError(f"Invalid installation entry in {self._path}: {e}") from e

        self._installations = snapshot
        logger.info("Loaded %d installation(s) from %s", len(snapshot), self._path)

    def _save(self, snapshot: tuple[ToolInstallation, ...]) -> None:
        data = {
            "schema_version": CURRENT_SCHEMA_VERSION,
            "installations": [i.model_dump() for i in snapshot],
        }
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise RegistryError(f"Cannot write installation registry {self._path}: {e}") from e
