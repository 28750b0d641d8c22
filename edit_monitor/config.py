# Edit Monitor — configuration
# Override the API endpoint, credentials and batching via config.yaml or CLI args.

import hashlib
import logging
import uuid
import yaml
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("~/.config/edit-monitor/config.yaml").expanduser()

# Numeric settings that must be greater than zero
POSITIVE_FIELDS = ("batch_size", "batch_interval", "http_timeout_secs", "stats_refresh_secs")


class ConfigError(ValueError):
    """Raised when a settings value is rejected."""


@dataclass
class Settings:
    """Runtime configuration for the edit monitor."""

    # Backend
    api_key: str = ""
    url: str = "https://prod.api.faros.ai"
    webhook: str = ""  # non-empty = flat JSON variant posted to this URL
    graph: str = "default"
    origin: str = "faros-jetbrains-plugin"
    http_timeout_secs: float = 10.0

    # Identity (vcs_uid generated from name + email when empty)
    vcs_uid: str = ""
    vcs_email: str = ""
    vcs_name: str = ""
    user_source: str = "jetbrains-plugin"

    # Batching
    batch_size: int = 500
    batch_interval: int = 60000  # ms

    # Category labels sent with each batch
    auto_completion_category: str = "AutoCompletion"
    hand_written_category: str = "HandWritten"

    # Local storage / display
    db_path: str = "~/.local/share/edit-monitor/metrics.db"
    stats_refresh_secs: float = 5.0

    @property
    def graphql_endpoint(self) -> str:
        return f"{self.url.rstrip('/')}/graphs/{self.graph}/graphql"

    @property
    def batch_interval_secs(self) -> float:
        return self.batch_interval / 1000.0

    def resolve_paths(self):
        """Expand ~ in local paths."""
        self.db_path = str(Path(self.db_path).expanduser())

    def ensure_uid(self) -> bool:
        """
        Generate vcs_uid if it is empty: first 8 hex chars of
        SHA-256(name + email), or of a random uuid when both are empty.
        Returns True when a new uid was generated.
        """
        if self.vcs_uid:
            return False
        if self.vcs_name or self.vcs_email:
            seed = self.vcs_name + self.vcs_email
        else:
            seed = str(uuid.uuid4())
        self.vcs_uid = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8]
        logger.info(f"Generated VCS UID: {self.vcs_uid}")
        return True

    def apply_form(self, values: Dict[str, str]) -> None:
        """
        Apply string values from a settings form.

        Every value is parsed before anything is assigned, so a rejected
        form leaves the current settings untouched.
        """
        types = {f.name: f.type for f in fields(self)}
        parsed = {}
        for key, raw in values.items():
            if key not in types:
                raise ConfigError(f"Unknown setting: {key}")
            parsed[key] = _validate(key, raw, types[key])

        for key, value in parsed.items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        return asdict(self)

    def save(self, path: Optional[str] = None) -> Path:
        """Write all settings to YAML."""
        cfg_path = Path(path) if path else CONFIG_PATH
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        with open(cfg_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        return cfg_path

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        """
        Load settings from a YAML file, falling back to defaults.

        Values that fail validation keep their default. A generated uid is
        written back so it stays the same across runs; an unreadable file
        is left as it is.
        """
        cfg_path = Path(path) if path else CONFIG_PATH
        readable = True
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**_known_values(data))
            except (yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
                readable = False
        else:
            cfg = cls()
        cfg.resolve_paths()
        if cfg.ensure_uid() and readable:
            try:
                cfg.save(cfg_path)
            except OSError as e:
                logger.warning(f"Could not save generated VCS UID to {cfg_path}: {e}")
        return cfg


def _known_values(data: dict) -> dict:
    """Filter loaded YAML to valid values of known fields."""
    types = {f.name: f.type for f in fields(Settings)}
    values = {}
    for key, raw in data.items():
        if key not in types or raw is None:
            continue
        try:
            values[key] = _validate(key, raw, types[key])
        except ConfigError as e:
            logger.warning(f"Ignoring config value, using default: {e}")
    return values


def _validate(key: str, raw, type_name):
    value = _coerce(key, raw, type_name)
    if key in POSITIVE_FIELDS and value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


def _coerce(key: str, raw, type_name):
    # dataclass field types are strings under postponed annotations
    name = type_name if isinstance(type_name, str) else getattr(type_name, "__name__", "")
    if name == "int":
        try:
            return int(str(raw).strip())
        except ValueError:
            raise ConfigError(f"{key} must be a valid integer, got {raw!r}")
    if name == "float":
        try:
            return float(str(raw).strip())
        except ValueError:
            raise ConfigError(f"{key} must be a number, got {raw!r}")
    return str(raw)
