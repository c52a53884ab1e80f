"""
installer:
    Install, uninstall and verify several assets for one client
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console

import skillpack.config as config
from skillpack import bundle as zips
from skillpack import metadata as codec
from skillpack.clients import get_client
from skillpack.detectors import detect_type
from skillpack.exceptions import SkillpackError, UnsupportedAssetTypeError
from skillpack.models import CLAUDE_CODE_PLUGIN, AssetType, Metadata, PluginConfig
from skillpack.scope import InstallScope
from skillpack.tracker import AssetKey, InstalledAsset, Tracker

logger = logging.getLogger(__name__)
console = Console()

SUCCESS = "success"
FAILED = "failed"
SKIPPED = "skipped"

DEFAULT_VERSION = "0.1.0"


@dataclass
class AssetBundle:
    """A bundle's bytes with its parsed metadata."""

    metadata: Metadata
    data: bytes

    @property
    def name(self) -> str:
        return self.metadata.name


@dataclass
class AssetResult:
    name: str
    status: str
    message: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


@dataclass
class VerifyResult:
    name: str
    installed: bool
    message: str


def load_bundle(path: Path) -> AssetBundle:
    """
    Read a bundle zip from disk.

    A zip without metadata.toml gets default metadata for its detected type,
    named after the file.
    """
    data = path.read_bytes()
    files = zips.list_files(data)
    if config.METADATA_FILE in files:
        metadata = codec.parse(zips.read_file(data, config.METADATA_FILE))
    else:
        metadata = detect_type(files, path.stem, DEFAULT_VERSION)
        data = zips.add_file(data, config.METADATA_FILE, codec.dumps(metadata))
        logger.info("no %s in %s, detected type %s", config.METADATA_FILE, path, metadata.type)
    return AssetBundle(metadata=metadata, data=data)


def _tracker_config(metadata: Metadata) -> dict[str, str]:
    if metadata.type == CLAUDE_CODE_PLUGIN and metadata.plugin and metadata.plugin.marketplace:
        return {"marketplace": metadata.plugin.marketplace}
    return {}


def _record_install(tracker: Tracker, client_id: str, metadata: Metadata, scope: InstallScope) -> None:
    key = AssetKey.for_scope(metadata.name, scope)
    existing = tracker.find(key)
    clients = list(existing.clients) if existing else []
    if client_id not in clients:
        clients.append(client_id)
    tracker.upsert(InstalledAsset(
        name=metadata.name,
        version=metadata.version,
        type=metadata.type.key,
        clients=clients,
        repository=key.repository,
        path=key.path,
        config=_tracker_config(metadata),
    ))


def install_assets(
    client_id: str,
    bundles: Iterable[AssetBundle],
    scope: InstallScope,
    tracker: Optional[Tracker] = None,
    home: Optional[Path] = None,
    force: bool = False,
) -> list[AssetResult]:
    """
    Install bundles one after another, returning one result per bundle.

    A failing asset does not stop the rest. Successful installs are recorded
    in the tracker when one is given; saving it is left to the caller. An
    asset the tracker already lists at the same version for this client is
    skipped unless force is set.
    """
    client = get_client(client_id)
    results: list[AssetResult] = []

    for item in bundles:
        name = item.name
        try:
            handler = client.get_handler(item.metadata)
        except UnsupportedAssetTypeError as e:
            logger.warning("skipping %s: %s", name, e)
            results.append(AssetResult(name, SKIPPED, str(e), e))
            continue

        key = AssetKey.for_scope(name, scope)
        if (
            tracker is not None
            and not force
            and not tracker.needs_install(key, item.metadata.version, [client_id])
        ):
            logger.debug("%s@%s already installed for %s", name, item.metadata.version, client_id)
            results.append(AssetResult(name, SKIPPED, "already installed"))
            continue

        try:
            base = client.base_dir(scope, home, item.metadata.type)
            handler.install(item.data, base)
        except (SkillpackError, OSError) as e:
            logger.info("install of %s failed: %s", name, e)
            results.append(AssetResult(name, FAILED, f"Installation failed: {e}", e))
            continue

        if tracker is not None:
            _record_install(tracker, client_id, item.metadata, scope)
        logger.info("installed %s@%s for %s", name, item.metadata.version, client_id)
        results.append(AssetResult(name, SUCCESS, f"Installed to {base}"))

    return results


def _stub_metadata(asset: InstalledAsset) -> Metadata:
    """Identity-only metadata rebuilt from a tracker entry."""
    metadata = Metadata.stub(asset.name, asset.version, AssetType.parse(asset.type))
    if metadata.type == CLAUDE_CODE_PLUGIN:
        metadata.plugin = PluginConfig(marketplace=asset.config.get("marketplace", ""))
    return metadata


def uninstall_assets(
    client_id: str,
    assets: Iterable[InstalledAsset],
    scope: InstallScope,
    tracker: Optional[Tracker] = None,
    home: Optional[Path] = None,
) -> list[AssetResult]:
    """
    Remove tracked assets from one client.

    The client is dropped from each tracker entry; an entry left with no
    clients is removed.
    """
    client = get_client(client_id)
    results: list[AssetResult] = []

    for asset in assets:
        metadata = _stub_metadata(asset)
        try:
            handler = client.get_handler(metadata)
        except UnsupportedAssetTypeError as e:
            results.append(AssetResult(asset.name, SKIPPED, str(e), e))
            continue

        try:
            base = client.base_dir(scope, home, metadata.type)
            handler.remove(base)
        except (SkillpackError, OSError) as e:
            logger.info("removal of %s failed: %s", asset.name, e)
            results.append(AssetResult(asset.name, FAILED, f"Removal failed: {e}", e))
            continue

        if tracker is not None:
            entry = tracker.find(asset.key)
            if entry is not None:
                entry.clients = [c for c in entry.clients if c != client_id]
                if not entry.clients:
                    tracker.remove(entry.key)
        logger.info("removed %s from %s", asset.name, client_id)
        results.append(AssetResult(asset.name, SUCCESS, f"Removed from {base}"))

    return results


def verify_assets(
    client_id: str,
    assets: Iterable[InstalledAsset],
    scope: InstallScope,
    home: Optional[Path] = None,
) -> list[VerifyResult]:
    """
    Ask each asset's handler whether it is still in place.

    An unreadable settings file fails that asset only.
    """
    client = get_client(client_id)
    results = []
    for asset in assets:
        metadata = _stub_metadata(asset)
        if not client.supports(metadata.type):
            results.append(VerifyResult(asset.name, False, f"not supported by {client_id}"))
            continue
        try:
            base = client.base_dir(scope, home, metadata.type)
            installed, message = client.get_handler(metadata).verify_installed(base)
        except (SkillpackError, OSError) as e:
            logger.info("verify of %s failed: %s", asset.name, e)
            installed, message = False, str(e)
        results.append(VerifyResult(asset.name, installed, message))
    return results


def print_summary(client_id: str, results: list[AssetResult], verbose: bool = False) -> None:
    """Print one line per client, then the failures."""
    succeeded = [r for r in results if r.status == SUCCESS]
    failed = [r for r in results if r.status == FAILED]
    skipped = [r for r in results if r.status == SKIPPED]

    parts: list[str] = []
    if succeeded:
        parts.append(f"{len(succeeded)} asset{'s' if len(succeeded) != 1 else ''}")
    if skipped:
        parts.append(f"{len(skipped)} skipped")
    if parts:
        console.print(f"  [green]{client_id}[/green] [dim]({', '.join(parts)})[/dim]")

    if verbose:
        for result in succeeded:
            console.print(f"    [green]{result.name}[/green] [dim]{result.message}[/dim]")
        for result in skipped:
            console.print(f"    [yellow]{result.name}[/yellow] [dim]({result.message})[/dim]")

    for result in failed:
        console.print(f"    [red]{result.name}[/red] [dim]({result.message})[/dim]")
