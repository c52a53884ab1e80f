"""
base:
    Client record: identity, base directory resolution and handler dispatch
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from skillpack.exceptions import UnsupportedAssetTypeError
from skillpack.handlers import BaseHandler
from skillpack.models import AssetType, Metadata
from skillpack.scope import InstallScope, resolve_base


@dataclass(frozen=True)
class Client:
    """One supported assistant and the asset types it can take."""

    id: str
    display_name: str
    handlers: dict[str, type[BaseHandler]]

    def supports(self, asset_type: AssetType) -> bool:
        return asset_type.key in self.handlers

    def base_dir(self, scope: InstallScope, home: Optional[Path] = None,
                 asset_type: Optional[AssetType] = None) -> Path:
        return resolve_base(self.id, scope, home, asset_type)

    def get_handler(self, metadata: Metadata) -> BaseHandler:
        """
        Build the handler for an asset.

        Raises:
            UnsupportedAssetTypeError: If this client has no handler for the type.
        """
        handler_cls = self.handlers.get(metadata.type.key)
        if handler_cls is None:
            raise UnsupportedAssetTypeError(self.id, metadata.type.key)
        return handler_cls(metadata)
