"""
dirasset:
    Directory-asset strategy: one extracted bundle per {base}/{subdir}/{name}
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from skillpack import bundle as zips
from skillpack import frontmatter as fm
from skillpack import metadata as codec
from skillpack.config import METADATA_FILE
from skillpack.exceptions import SkillpackError, ValidationError
from skillpack.handlers import BaseHandler
from skillpack.models import AssetType, Metadata

logger = logging.getLogger(__name__)


@dataclass
class InstalledAssetInfo:
    """An asset found on disk under a client's base directory."""

    name: str
    version: str
    type: str
    description: str
    install_path: Path


@dataclass
class PromptContent:
    """The prompt text of an installed asset plus where it lives."""

    content: str
    base_dir: Path
    description: str = ""
    version: str = ""


class DirectoryAssetOps:
    """Install, remove and verify assets kept as whole directories."""

    def __init__(self, subdir: str, expected_type: AssetType):
        self.subdir = subdir
        self.expected_type = expected_type

    def asset_dir(self, base: Path, name: str) -> Path:
        return base / self.subdir / name

    def install(self, bundle: bytes, base: Path, name: str) -> Path:
        """
        Validate, then replace {base}/{subdir}/{name} with the bundle contents.

        Validation happens before anything is deleted, so a bad bundle never
        leaves a previous install half-removed.
        """
        codec.validate_zip(bundle, self.expected_type)

        dest = self.asset_dir(base, name)
        if dest.exists():
            shutil.rmtree(dest)
        dest.mkdir(parents=True)
        zips.safe_extract(bundle, dest)
        logger.debug("extracted %s to %s", name, dest)
        return dest

    def remove(self, base: Path, name: str) -> None:
        dest = self.asset_dir(base, name)
        if dest.exists():
            shutil.rmtree(dest)
            logger.debug("removed %s", dest)

    def verify_installed(self, base: Path, name: str, version: str) -> tuple[bool, str]:
        dest = self.asset_dir(base, name)
        if not dest.is_dir():
            return False, "directory not found"
        metadata_path = dest / METADATA_FILE
        if not metadata_path.exists():
            return False, f"{METADATA_FILE} not found"
        try:
            installed = codec.parse(metadata_path.read_bytes())
        except ValidationError as e:
            return False, str(e)
        if installed.version != version:
            return False, f"version mismatch: installed {installed.version}, expected {version}"
        return True, "installed"

    def scan_installed(self, base: Path) -> list[InstalledAssetInfo]:
        """List parseable assets of the expected type under {base}/{subdir}."""
        root = base / self.subdir
        if not root.is_dir():
            return []
        found = []
        for entry in sorted(root.iterdir()):
            metadata_path = entry / METADATA_FILE
            if not entry.is_dir() or not metadata_path.exists():
                continue
            try:
                metadata = codec.parse(metadata_path.read_bytes())
            except ValidationError:
                logger.debug("skipping unparseable %s", metadata_path)
                continue
            if metadata.type != self.expected_type:
                continue
            description = metadata.asset.description
            if not description and metadata.prompt_file():
                description = fm.get_description(entry / metadata.prompt_file()) or ""
            found.append(
                InstalledAssetInfo(
                    name=metadata.name,
                    version=metadata.version,
                    type=metadata.type.key,
                    description=description,
                    install_path=entry,
                )
            )
        return found

    def read_prompt_content(self, base: Path, name: str, default_prompt: str) -> PromptContent:
        """Read an installed asset's prompt, honouring the prompt-file it declares."""
        dest = self.asset_dir(base, name)
        if not dest.is_dir():
            raise SkillpackError(f"asset not found: {name}")

        prompt_file = default_prompt
        metadata: Optional[Metadata] = None
        metadata_path = dest / METADATA_FILE
        if metadata_path.exists():
            metadata = codec.parse(metadata_path.read_bytes())
            prompt_file = metadata.prompt_file() or default_prompt

        prompt_path = dest / prompt_file
        if not prompt_path.exists():
            raise SkillpackError(f"prompt file not found for {name}: {prompt_file}")
        description = metadata.asset.description if metadata else ""
        return PromptContent(
            content=prompt_path.read_text(),
            base_dir=dest,
            description=description or fm.get_description(prompt_path) or "",
            version=metadata.version if metadata else "",
        )


class DirectoryAssetHandler(BaseHandler):
    """Handler whose whole job is a DirectoryAssetOps."""

    ops: DirectoryAssetOps

    def install(self, bundle: bytes, base: Path) -> None:
        self.ops.install(bundle, base, self.name)

    def remove(self, base: Path) -> None:
        self.ops.remove(base, self.name)

    def verify_installed(self, base: Path) -> tuple[bool, str]:
        return self.ops.verify_installed(base, self.name, self.metadata.version)

    def get_install_path(self) -> str:
        return f"{self.ops.subdir}/{self.name}"
