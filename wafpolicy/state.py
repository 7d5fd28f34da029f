"""Local JSON state for the command line driver.

Maps a resource address to the durable ID and the last attribute map read
from the service. The remote API stays authoritative; this file is only a
cache of the last read.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from wafpolicy.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "frontdoorwaf.tfstate.json"
STATE_VERSION = 1


class StateFile:
    """
    JSON-backed resource state.

    Args:
        path: Location of the state file
    """

    def __init__(self, path: str = DEFAULT_STATE_FILE):
        self.path = path
        self.resources: Dict[str, Dict[str, Any]] = {}
        if os.path.exists(path):
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read state file {self.path}: {e}") from e
        if not isinstance(data, dict) or data.get("version") != STATE_VERSION:
            raise ConfigurationError(
                f"Unsupported state file format in {self.path}"
            )
        self.resources = data.get("resources", {})

    def save(self) -> None:
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w") as f:
            json.dump(
                {"version": STATE_VERSION, "resources": self.resources},
                f,
                indent=2,
                sort_keys=True,
            )
        os.replace(tmp_path, self.path)
        logger.debug(f"Wrote {len(self.resources)} resource(s) to {self.path}")

    def get_id(self, address: str) -> Optional[str]:
        entry = self.resources.get(address)
        return entry["id"] if entry else None

    def put(self, address: str, resource_id: str, attributes: Dict[str, Any]) -> None:
        self.resources[address] = {"id": resource_id, "attributes": attributes}

    def remove(self, address: str) -> None:
        self.resources.pop(address, None)
