"""
exceptions:
    Error types raised by skillpack
"""


class SkillpackError(Exception):
    """Base class for all skillpack errors."""


class ConfigurationError(SkillpackError):
    """Invalid or incomplete configuration (scope, config.yml, marketplace)."""


class ValidationError(SkillpackError):
    """Asset metadata or bundle contents failed validation."""


class UnsupportedError(SkillpackError):
    """An operation the target client cannot perform."""


class UnsupportedAssetTypeError(UnsupportedError):
    """No handler exists for a (client, asset type) pair."""

    def __init__(self, client: str, asset_type: str):
        self.client = client
        self.asset_type = asset_type
        super().__init__(f"{client} does not support asset type: {asset_type}")


class UnsupportedHookEventError(UnsupportedError):
    """A hook event has no native equivalent for the target client."""

    def __init__(self, client: str, event: str):
        self.client = client
        self.event = event
        super().__init__(f"hook event {event!r} is not supported by {client}")


class TrackerError(SkillpackError):
    """The installed-assets ledger could not be read or written."""


class SettingsError(SkillpackError):
    """A client's native JSON settings file is malformed."""


class BundleError(SkillpackError):
    """An asset bundle archive is unreadable or unsafe."""
