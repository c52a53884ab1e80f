"""
handlers:
    Handler protocol and shared base for per-(client, asset type) install logic
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from skillpack import metadata as codec
from skillpack.models import Metadata


# =============================================================================
# Handler Protocol
# =============================================================================


class Handler(Protocol):
    """Installs, removes and verifies one asset for one client."""

    client_id: str
    metadata: Metadata

    def install(self, bundle: bytes, base: Path) -> None:
        """Translate the bundle into the client's native files under base."""
        ...

    def remove(self, base: Path) -> None:
        """Remove what install wrote. Removing something absent is a no-op."""
        ...

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        """Return (installed, reason)."""
        ...

    def get_install_path(self) -> str:
        """Path of the installed asset relative to the base directory."""
        ...


# =============================================================================
# BaseHandler - shared defaults
# =============================================================================


class BaseHandler:
    """Base class holding the asset metadata and bundle validation."""

    client_id: str = ""

    def __init__(self, metadata: Metadata):
        self.metadata = metadata

    @property
    def name(self) -> str:
        return self.metadata.name

    def validate(self, bundle: bytes) -> Metadata:
        """Validate the bundle against this handler's asset type before any write."""
        return codec.validate_zip(bundle, self.metadata.type)

    def get_install_path(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.client_id}:{self.name}>"

