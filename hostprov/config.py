"""Settings loading and validation."""

import glob
import logging
import os
import tempfile
from dataclasses import dataclass

import yaml

from hostprov.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/hostprov/config.yaml"
DEFAULT_API_URL = "https://api.linode.com/v4"

REQUIRED_SETTINGS = ["admin_username", "image", "scripts_dir", "wait_time"]

DEFAULTS = {
    "admin_username": "",
    "image": "",
    "scripts_dir": "",
    "wait_time": "",
    "notify_email": "",
    "setup_config_template": "",
    "setup_entrypoint": "setupall.sh",
    "ssh_user": "root",
    "ssh_public_key": "~/.ssh/id_rsa.pub",
    "password_log_dir": "",
    "entropy_source": "random.org",
    "api_url": DEFAULT_API_URL,
}

ENTROPY_SOURCES = ("random.org", "local")

SETUP_SCRIPTS_GLOB = "*setup*sh"


@dataclass
class Settings:
    """Validated settings for a provisioning run."""

    admin_username: str
    image: str
    scripts_dir: str
    wait_time: int
    notify_email: str = ""
    setup_config_template: str = ""
    setup_entrypoint: str = "setupall.sh"
    ssh_user: str = "root"
    ssh_public_key: str = "~/.ssh/id_rsa.pub"
    password_log_dir: str = ""
    entropy_source: str = "random.org"
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_dict(cls, raw: dict) -> "Settings":
        """Validate *raw* and build a Settings instance from it."""
        validate_settings(raw)
        merged = {**DEFAULTS, **raw}
        try:
            wait_time = int(merged["wait_time"])
        except (TypeError, ValueError):
            raise ConfigError(f"'wait_time' must be a number of seconds, got {merged['wait_time']!r}") from None
        if merged["entropy_source"] not in ENTROPY_SOURCES:
            raise ConfigError(f"'entropy_source' must be one of {', '.join(ENTROPY_SOURCES)}, got {merged['entropy_source']!r}")
        settings = cls(
            admin_username=str(merged["admin_username"]),
            image=str(merged["image"]),
            scripts_dir=_expand_path(str(merged["scripts_dir"])),
            wait_time=wait_time,
            notify_email=str(merged["notify_email"] or ""),
            setup_config_template=_expand_path(str(merged["setup_config_template"] or "")),
            setup_entrypoint=str(merged["setup_entrypoint"]),
            ssh_user=str(merged["ssh_user"]),
            ssh_public_key=_expand_path(str(merged["ssh_public_key"])),
            password_log_dir=_expand_path(str(merged["password_log_dir"] or "")) or tempfile.gettempdir(),
            entropy_source=merged["entropy_source"],
            api_url=str(merged["api_url"]).rstrip("/"),
        )
        settings.check_local_resources()
        return settings

    def check_local_resources(self) -> None:
        """Fail before anything is created if a local path named in the settings is unusable.

        Raises:
            ConfigError: for the first missing or unreadable resource.
        """
        if not os.path.isdir(self.scripts_dir):
            raise ConfigError(f"'scripts_dir' is not a directory: {self.scripts_dir}")
        if not glob.glob(os.path.join(self.scripts_dir, SETUP_SCRIPTS_GLOB)):
            raise ConfigError(f"No setup scripts matching '{SETUP_SCRIPTS_GLOB}' in {self.scripts_dir}")
        if self.setup_config_template and not (
            os.path.isfile(self.setup_config_template) and os.access(self.setup_config_template, os.R_OK)
        ):
            raise ConfigError(f"'setup_config_template' is not a readable file: {self.setup_config_template}")
        if not os.path.isdir(self.password_log_dir):
            raise ConfigError(f"'password_log_dir' is not a directory: {self.password_log_dir}")


def load_settings(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """Load settings from a YAML file, merged over DEFAULTS.

    Raises:
        ConfigError: if the file is missing or not valid YAML.
    """
    path = _expand_path(config_path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Could not find required config file at {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping of settings")
    return {**DEFAULTS, **raw}


def validate_settings(settings: dict) -> None:
    """Ensure every required setting has a non-empty value.

    Reports all missing keys, not only the first one.

    Raises:
        ConfigError: with ``missing`` listing each absent key.
    """
    missing = []
    for key in REQUIRED_SETTINGS:
        value = settings.get(key)
        if value is None or str(value).strip() == "":
            logger.error(f"Missing required configuration value: {key}")
            missing.append(key)

    if missing:
        raise ConfigError(f"Missing required configurations: {', '.join(missing)}", missing=missing)


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path)) if path else path
