"""
Settings loader for the firewall policy adapter.

Settings are merged from, in increasing precedence:

1. Built-in defaults
2. A YAML settings file (``frontdoorwaf.yml`` in the source folder, or an
   explicit path)
3. Environment variables (ARM_SUBSCRIPTION_ID, ARM_ACCESS_TOKEN, ARM_ENDPOINT,
   FRONTDOORWAF_POLL_INTERVAL, FRONTDOORWAF_TIMEOUT, FRONTDOORWAF_REQUIRE_IMPORT)
4. Explicit overrides passed by the CLI

"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from wafpolicy import schema
from wafpolicy.client import DEFAULT_ENDPOINT, DEFAULT_POLL_INTERVAL, FrontDoorPolicyClient
from wafpolicy.exceptions import ConfigurationError

# Configure logging
logger = logging.getLogger(__name__)

SETTINGS_FILENAMES = ["frontdoorwaf.yml", "frontdoorwaf.yaml"]

ENVIRONMENT_VARIABLES = {
    "ARM_SUBSCRIPTION_ID": "subscription_id",
    "ARM_ACCESS_TOKEN": "access_token",
    "ARM_ENDPOINT": "endpoint",
    "FRONTDOORWAF_API_VERSION": "api_version",
    "FRONTDOORWAF_POLL_INTERVAL": "poll_interval",
    "FRONTDOORWAF_TIMEOUT": "timeout",
    "FRONTDOORWAF_REQUIRE_IMPORT": "require_import",
}

TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off", ""}


@dataclass
class AdapterSettings:
    """
    Resolved adapter settings.

    Args:
        subscription_id: Azure subscription holding the policies
        access_token: Bearer token for the management API
        endpoint: ARM endpoint URL
        api_version: API version for firewall policy calls
        poll_interval: Seconds between long-running operation polls
        timeout: Seconds each lifecycle call may take (None: unlimited)
        require_import: Refuse to create policies that already exist
    """

    subscription_id: Optional[str] = None
    access_token: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    api_version: str = schema.API_VERSION
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: Optional[float] = None
    require_import: bool = False

    def build_client(self) -> FrontDoorPolicyClient:
        """Create a management client from these settings.

        Raises:
            ConfigurationError: If no subscription ID is configured
        """
        if not self.subscription_id:
            raise ConfigurationError(
                "No subscription ID configured. Set ARM_SUBSCRIPTION_ID or "
                "subscription_id in frontdoorwaf.yml"
            )
        return FrontDoorPolicyClient(
            subscription_id=self.subscription_id,
            token=self.access_token,
            endpoint=self.endpoint,
            api_version=self.api_version,
            poll_interval=self.poll_interval,
        )


def _to_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ConfigurationError(f"Setting '{key}' must be a boolean, got {value!r}")


def _to_seconds(value: Any, key: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Setting '{key}' must be a number of seconds, got {value!r}"
        ) from None
    if seconds < 0:
        raise ConfigurationError(f"Setting '{key}' cannot be negative")
    return seconds


def _coerce(raw: Mapping[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(AdapterSettings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(f"Unknown setting(s): {', '.join(unknown)}")

    values = dict(raw)
    if "require_import" in values:
        values["require_import"] = _to_bool(values["require_import"], "require_import")
    if "poll_interval" in values:
        values["poll_interval"] = _to_seconds(values["poll_interval"], "poll_interval")
        if values["poll_interval"] is None:
            values["poll_interval"] = DEFAULT_POLL_INTERVAL
    if "timeout" in values:
        values["timeout"] = _to_seconds(values["timeout"], "timeout")
    return values


def find_settings_file(source: str) -> Optional[str]:
    """Return the settings file inside a source folder, if there is one."""
    if not source or not os.path.isdir(source):
        return None
    for filename in SETTINGS_FILENAMES:
        candidate = os.path.join(source, filename)
        if os.path.isfile(candidate):
            return candidate
    return None


def read_settings_file(path: str) -> Dict[str, Any]:
    """Load settings from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in settings file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    logger.info(f"Loaded adapter settings from {path}")
    return data


def read_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    return {
        key: environ[var] for var, key in ENVIRONMENT_VARIABLES.items() if var in environ
    }


def load_settings(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AdapterSettings:
    """
    Resolve adapter settings from file, environment and overrides.

    Args:
        path: YAML settings file; skipped when None
        overrides: Explicit values that win over everything else; None values
            are ignored so unset CLI options do not mask other sources
        environ: Environment mapping (defaults to os.environ)

    Returns:
        AdapterSettings

    Raises:
        ConfigurationError: If any source holds an unknown or invalid setting
    """
    merged: Dict[str, Any] = {}
    if path:
        merged.update(_coerce(read_settings_file(path)))
    merged.update(_coerce(read_environment(environ)))
    if overrides:
        merged.update(_coerce({k: v for k, v in overrides.items() if v is not None}))
    return AdapterSettings(**merged)
