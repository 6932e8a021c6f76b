"""Configuration objects for apm."""

from dataclasses import dataclass, field
import os
from pathlib import Path

from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode
import yaml

from .constants import DB_DIR, DB_FILE, REPOSITORY_DIR, TMP_DIR
from .exceptions import ValidationError

__all__ = [
    "Credentials",
    "ApmConfig",
    "load_credentials",
]

DEFAULT_APM_PATH = Path("~/.apm")
DEFAULT_PLUGIN_PATH = Path("~/.avalanchego/plugins")
DEFAULT_ADMIN_API_ENDPOINT = "127.0.0.1:9650"

APM_HOME_ENV = "APM_HOME"
APM_PLUGIN_PATH_ENV = "APM_PLUGIN_PATH"
APM_ADMIN_API_ENDPOINT_ENV = "APM_ADMIN_API_ENDPOINT"
APM_CREDENTIALS_FILE_ENV = "APM_CREDENTIALS_FILE"


@dataclass
class Credentials(DataClassDictMixin):
    """Basic auth credentials used to fetch private plugin repositories."""

    username: str
    password: str


@dataclass
class ApmConfig:
    """Configuration for an `apm.apm.APM` instance."""

    directory: Path = field(default_factory=lambda: DEFAULT_APM_PATH.expanduser())
    """Directory holding the registry database and repository checkouts."""

    plugin_dir: Path = field(default_factory=lambda: DEFAULT_PLUGIN_PATH.expanduser())
    """Directory the VM binaries are installed into."""

    admin_api_endpoint: str = DEFAULT_ADMIN_API_ENDPOINT
    """host:port of the node admin API notified after installs."""

    auth: Credentials | None = None
    """Optional credentials for fetching plugin repositories."""

    @property
    def db_path(self) -> Path:
        return self.directory / DB_DIR / DB_FILE

    @property
    def repositories_path(self) -> Path:
        return self.directory / REPOSITORY_DIR

    @property
    def tmp_path(self) -> Path:
        return self.directory / TMP_DIR

    @classmethod
    def from_env(cls) -> "ApmConfig":
        """Build a config from the environment, using defaults when unset."""
        config = cls()
        if home := os.environ.get(APM_HOME_ENV):
            config.directory = Path(home).expanduser()
        if plugin_path := os.environ.get(APM_PLUGIN_PATH_ENV):
            config.plugin_dir = Path(plugin_path).expanduser()
        if endpoint := os.environ.get(APM_ADMIN_API_ENDPOINT_ENV):
            config.admin_api_endpoint = endpoint
        if credentials_file := os.environ.get(APM_CREDENTIALS_FILE_ENV):
            config.auth = load_credentials(Path(credentials_file).expanduser())
        return config


def load_credentials(path: Path) -> Credentials:
    """Read basic auth credentials from a YAML file with username and password."""
    try:
        content = path.read_text()
    except OSError as err:
        raise ValidationError(f"Unable to read credentials file {path}: {err}") from err
    try:
        return yaml_decode(content, Credentials)
    except (yaml.YAMLError, LookupError, ValueError, TypeError, AttributeError) as err:
        raise ValidationError(
            f"Credentials file {path} must contain a username and password: {err}"
        ) from err
