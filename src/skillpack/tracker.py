"""
tracker:
    Ledger of installed assets across scopes (installed.json)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

import skillpack.config as config
from skillpack.exceptions import TrackerError
from skillpack.scope import InstallScope, match_repo_urls, normalize_repo_path, path_contains

logger = logging.getLogger(__name__)

TRACKER_FORMAT_VERSION = "3"
ASSETS_FIELD = "assets"
LEGACY_ASSETS_FIELD = "artifacts"

RepoMatcher = Callable[[str, str], bool]


@dataclass(frozen=True)
class AssetKey:
    """Unique identity of a tracker entry."""

    name: str
    repository: str = ""
    path: str = ""

    @classmethod
    def for_scope(cls, name: str, scope: InstallScope) -> AssetKey:
        return cls(name, scope.repository, scope.scoped_path)


@dataclass
class InstalledAsset:
    """One tracker entry."""

    name: str
    version: str
    type: str
    clients: list[str] = field(default_factory=list)
    repository: str = ""
    path: str = ""
    config: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> AssetKey:
        return AssetKey(self.name, self.repository, self.path)

    @property
    def is_global(self) -> bool:
        return not self.repository

    def scope_description(self) -> str:
        if not self.repository:
            return "Global"
        if self.path:
            return f"{self.repository}:{self.path}"
        return self.repository

    def to_dict(self) -> dict:
        result = {
            "name": self.name,
            "version": self.version,
            "type": self.type,
        }
        if self.repository:
            result["repository"] = self.repository
        if self.path:
            result["path"] = self.path
        result["clients"] = list(self.clients)
        if self.config:
            result["config"] = dict(self.config)
        return result

    @classmethod
    def from_dict(cls, data: dict) -> InstalledAsset:
        return cls(
            name=data.get("name") or "",
            version=data.get("version") or "",
            type=data.get("type") or "",
            clients=list(data.get("clients") or []),
            repository=data.get("repository") or "",
            path=data.get("path") or "",
            config=dict(data.get("config") or {}),
        )


class Tracker:
    """
    In-memory ledger of installed assets, loaded from and saved to JSON.

    Entries are unique by AssetKey (name, repository, path). Saving rewrites
    the whole file; concurrent writers race and the last one wins.
    """

    def __init__(self, assets: Optional[Iterable[InstalledAsset]] = None,
                 version: str = TRACKER_FORMAT_VERSION):
        self.version = version
        self.assets: list[InstalledAsset] = list(assets or [])

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Optional[Path] = None) -> Tracker:
        """
        Load the ledger. A missing file is an empty ledger.

        Raises:
            TrackerError: If the file exists but cannot be read or parsed.
        """
        path = path or config.TRACKER_FILE
        if not path.exists():
            return cls()

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise TrackerError(f"failed to read tracker file {path}: {e}") from e

        if not isinstance(data, dict):
            raise TrackerError(f"failed to read tracker file {path}: expected an object")

        entries = data.get(ASSETS_FIELD)
        if entries is None:
            entries = data.get(LEGACY_ASSETS_FIELD)
            if entries is not None:
                logger.debug("loaded legacy '%s' list from %s", LEGACY_ASSETS_FIELD, path)
        if entries is not None and not isinstance(entries, list):
            raise TrackerError(f"failed to read tracker file {path}: '{ASSETS_FIELD}' is not a list")

        assets = []
        for index, entry in enumerate(entries or []):
            if not isinstance(entry, dict):
                raise TrackerError(
                    f"failed to read tracker file {path}: entry {index} is not an object"
                )
            assets.append(InstalledAsset.from_dict(entry))

        return cls(
            assets,
            version=str(data.get("version", TRACKER_FORMAT_VERSION)),
        )

    def save(self, path: Optional[Path] = None) -> None:
        """Write the ledger, stamping the current format version."""
        path = path or config.TRACKER_FILE
        self.version = TRACKER_FORMAT_VERSION
        data = {
            "version": self.version,
            ASSETS_FIELD: [asset.to_dict() for asset in self.assets],
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise TrackerError(f"failed to write tracker file {path}: {e}") from e

    @staticmethod
    def delete(path: Optional[Path] = None) -> None:
        """Remove the ledger file; a missing file is not an error."""
        path = path or config.TRACKER_FILE
        path.unlink(missing_ok=True)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find(self, key: AssetKey) -> Optional[InstalledAsset]:
        for asset in self.assets:
            if asset.key == key:
                return asset
        return None

    def find_with_matcher(self, name: str, repo_url: str, path: str,
                          match_repo: RepoMatcher = match_repo_urls) -> Optional[InstalledAsset]:
        """Like find(), comparing repositories with match_repo instead of equality."""
        path = normalize_repo_path(path)
        for asset in self.assets:
            if asset.name != name or asset.path != path:
                continue
            if not repo_url and not asset.repository:
                return asset
            if repo_url and asset.repository and match_repo(asset.repository, repo_url):
                return asset
        return None

    def find_by_scope(self, repository: str, path: str = "") -> list[InstalledAsset]:
        return [a for a in self.assets if a.repository == repository and a.path == path]

    def find_global(self) -> list[InstalledAsset]:
        return [a for a in self.assets if a.is_global]

    def find_for_scope(self, repo_url: str, path: str = "",
                       match_repo: RepoMatcher = match_repo_urls) -> list[InstalledAsset]:
        """
        Every asset that applies when working at path inside repo_url.

        That is all global assets, plus assets of the matching repository whose
        recorded path is empty or contains the queried path.
        """
        results = []
        for asset in self.assets:
            if asset.is_global:
                results.append(asset)
            elif repo_url and match_repo(asset.repository, repo_url):
                if not asset.path or path_contains(asset.path, path):
                    results.append(asset)
        return results

    def group_by_scope(self) -> dict[str, list[InstalledAsset]]:
        groups: dict[str, list[InstalledAsset]] = {}
        for asset in self.assets:
            groups.setdefault(asset.scope_description(), []).append(asset)
        return groups

    def needs_install(self, key: AssetKey, version: str, clients: Iterable[str]) -> bool:
        """
        True if the asset is absent, at another version, or missing a client.

        This is what makes repeated installs incremental.
        """
        asset = self.find(key)
        if asset is None or asset.version != version:
            return True
        return any(client not in asset.clients for client in clients)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def upsert(self, entry: InstalledAsset) -> None:
        """Replace the entry with the same key, or append."""
        for i, asset in enumerate(self.assets):
            if asset.key == entry.key:
                self.assets[i] = entry
                return
        self.assets.append(entry)

    def remove(self, key: AssetKey) -> bool:
        before = len(self.assets)
        self.assets = [a for a in self.assets if a.key != key]
        return len(self.assets) != before

    def remove_by_scope(self, repository: str, path: str = "") -> int:
        before = len(self.assets)
        self.assets = [
            a for a in self.assets if not (a.repository == repository and a.path == path)
        ]
        return before - len(self.assets)
