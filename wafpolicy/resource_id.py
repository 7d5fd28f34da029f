"""Generic Azure resource ID parsing.

Resource IDs have the form::

    /subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}[/{type}/{name}...]

The segments after the provider namespace are exposed as a key/value ``path``
mapping, so callers pick the name by resource type key.
"""

from dataclasses import dataclass, field
from typing import Dict

from wafpolicy.exceptions import ResourceIdParseError


@dataclass
class ResourceId:
    subscription_id: str
    resource_group: str
    provider: str = ""
    path: Dict[str, str] = field(default_factory=dict)

    def name_for(self, key: str) -> str:
        """Return the resource name stored under a path key.

        Raises:
            ResourceIdParseError: If the ID does not contain the key
        """
        if key in self.path:
            return self.path[key]
        for path_key, value in self.path.items():
            if path_key.lower() == key.lower():
                return value
        raise ResourceIdParseError(
            f"ID is missing the {key!r} segment",
            context={"segments": ", ".join(self.path) or "none"},
        )


def parse_resource_id(resource_id: str) -> ResourceId:
    """Parse an Azure resource ID into its components.

    Args:
        resource_id: Durable identifier as returned by the management API

    Returns:
        ResourceId with subscription, resource group, provider and path

    Raises:
        ResourceIdParseError: If the ID is malformed
    """
    if not isinstance(resource_id, str) or not resource_id.strip("/"):
        raise ResourceIdParseError(
            "Cannot parse an empty resource ID", context={"id": resource_id}
        )

    components = resource_id.strip("/").split("/")
    if len(components) % 2 != 0:
        raise ResourceIdParseError(
            "The number of path segments is not divisible by 2",
            context={"id": resource_id},
        )

    path: Dict[str, str] = {}
    for i in range(0, len(components), 2):
        key, value = components[i], components[i + 1]
        if key == "" or value == "":
            raise ResourceIdParseError(
                "Key/Value cannot be empty strings", context={"id": resource_id}
            )
        path[key] = value

    # Keys are matched case-insensitively, as ARM itself does
    lowered = {k.lower(): k for k in path}

    subscription_key = lowered.get("subscriptions")
    if subscription_key is None:
        raise ResourceIdParseError(
            "No subscription ID found in resource ID", context={"id": resource_id}
        )
    subscription_id = path.pop(subscription_key)

    resource_group_key = lowered.get("resourcegroups")
    if resource_group_key is None:
        raise ResourceIdParseError(
            "No resource group name found in resource ID", context={"id": resource_id}
        )
    resource_group = path.pop(resource_group_key)

    provider = ""
    provider_key = lowered.get("providers")
    if provider_key is not None:
        provider = path.pop(provider_key)

    return ResourceId(
        subscription_id=subscription_id,
        resource_group=resource_group,
        provider=provider,
        path=path,
    )
