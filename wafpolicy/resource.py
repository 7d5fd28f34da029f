"""Lifecycle adapter for the azurerm_frontdoor_firewall_policy resource.

Create and Update share one idempotent upsert; Read rebuilds every attribute
from the remote object; Delete treats a missing policy as already deleted.
The adapter holds a client handle and reads nothing from process-wide state;
each call receives its own CallContext.

Every error leaving this module carries the operation, the policy name and
the resource group in its context.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from wafpolicy import schema
from wafpolicy.client import FrontDoorPolicyClient
from wafpolicy.context import CallContext
from wafpolicy.exceptions import (
    FrontDoorWafError,
    NotFound,
    NotFoundAfterCreate,
    RemoteCallError,
    ResourceAlreadyExistsError,
    ResourceIdParseError,
    ValidationError,
)
from wafpolicy.expanders import expand_policy
from wafpolicy.flatteners import flatten_policy_attributes
from wafpolicy.models import decode_policy
from wafpolicy.resource_id import parse_resource_id

logger = logging.getLogger(__name__)


def _wrap(
    error: FrontDoorWafError,
    message: str,
    operation: str,
    name: str,
    resource_group: Optional[str],
) -> FrontDoorWafError:
    """Re-raise-ready copy of ``error`` with the call's identifying context."""
    context = dict(error.context)
    context.update(
        {"operation": operation, "name": name, "resource_group": resource_group}
    )
    if isinstance(error, RemoteCallError):
        return type(error)(
            f"{message}: {error.message}", context=context, status_code=error.status_code
        )
    return type(error)(f"{message}: {error.message}", context=context)


def _split_id(resource_id: str, operation: str) -> Tuple[str, str]:
    """Parse a policy ID into (resource group, name).

    A malformed ID is reported with the raw ID in place of the name.
    """
    try:
        parsed = parse_resource_id(resource_id)
        return parsed.resource_group, parsed.name_for(schema.RESOURCE_PATH_KEY)
    except ResourceIdParseError as e:
        raise _wrap(
            e,
            "Error parsing Front Door Firewall Policy ID",
            operation,
            resource_id,
            None,
        ) from e


class FirewallPolicyResource:
    """
    Front Door firewall policy resource adapter.

    Args:
        client: Management API client for firewall policies
        require_import: Refuse to create a policy that already exists remotely
    """

    type_name = schema.RESOURCE_TYPE

    def __init__(self, client: FrontDoorPolicyClient, require_import: bool = False):
        self.client = client
        self.require_import = require_import

    @staticmethod
    def schema() -> Dict[str, Dict[str, Any]]:
        return schema.resource_schema()

    def requires_replacement(self, current_id: str, config: Dict[str, Any]) -> List[str]:
        """Return the force-new attributes that differ from the policy at ``current_id``.

        Name and resource group are part of the ID, so no remote call is made.
        Azure compares both case-insensitively.

        Raises:
            ValidationError: If the configuration is invalid
            ResourceIdParseError: If ``current_id`` is malformed
        """
        policy = decode_policy(config)
        resource_group, name = _split_id(current_id, "Plan")
        current = {"name": name, "resource_group_name": resource_group}
        desired = {"name": policy.name, "resource_group_name": policy.resource_group_name}
        return [
            key
            for key in schema.FORCE_NEW_ATTRIBUTES
            if current[key].lower() != desired[key].lower()
        ]

    def _check_not_present(self, name: str, resource_group: str, ctx: CallContext) -> None:
        try:
            response = self.client.get(resource_group, name, ctx)
        except NotFound:
            return
        except RemoteCallError as e:
            raise _wrap(
                e,
                f"Error checking for presence of existing Front Door Firewall Policy {name!r}",
                "Create",
                name,
                resource_group,
            ) from e
        existing_id = response.body.get("id", "")
        raise ResourceAlreadyExistsError(
            f"A resource with the ID {existing_id!r} already exists - to be managed "
            f"it needs to be imported into state",
            resource_id=existing_id,
            context={"operation": "Create", "name": name, "resource_group": resource_group},
        )

    def create_or_update(
        self,
        config: Dict[str, Any],
        ctx: Optional[CallContext] = None,
        current_id: Optional[str] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        """Create or update a policy from its attribute map.

        Args:
            config: Attribute map of the desired policy
            ctx: Call context; a context without deadline is used if omitted
            current_id: ID already held in state, None for a create

        Returns:
            Tuple of (durable ID, attribute map read back from the service)

        Raises:
            ValidationError: If the configuration is invalid (no remote call made)
            ResourceAlreadyExistsError: On create with require_import set
            RemoteCallError: If the upsert or its completion fails
            NotFoundAfterCreate: If the read-back returns no ID
        """
        ctx = ctx or CallContext()
        policy = decode_policy(config)
        name, resource_group = policy.name, policy.resource_group_name
        operation = "Update" if current_id else "Create"

        logger.info(
            f"Preparing arguments for Front Door Firewall Policy {name!r} "
            f"(Resource Group {resource_group!r})"
        )
        body = expand_policy(policy)

        if self.require_import and current_id is None:
            self._check_not_present(name, resource_group, ctx)

        try:
            future = self.client.begin_create_or_update(resource_group, name, body, ctx)
        except RemoteCallError as e:
            raise _wrap(
                e,
                f"Error creating Front Door Firewall Policy {name!r}",
                operation,
                name,
                resource_group,
            ) from e
        try:
            future.wait(ctx)
        except RemoteCallError as e:
            raise _wrap(
                e,
                f"Error waiting for creation of Front Door Firewall Policy {name!r}",
                operation,
                name,
                resource_group,
            ) from e

        try:
            response = self.client.get(resource_group, name, ctx)
        except NotFound as e:
            raise NotFoundAfterCreate(
                f"Front Door Firewall Policy {name!r} was not found after {operation.lower()}",
                context={"operation": operation, "name": name, "resource_group": resource_group},
            ) from e
        except RemoteCallError as e:
            raise _wrap(
                e,
                f"Error retrieving Front Door Firewall Policy {name!r}",
                operation,
                name,
                resource_group,
            ) from e

        resource_id = response.body.get("id")
        if not resource_id:
            raise NotFoundAfterCreate(
                f"Cannot read Front Door Firewall Policy {name!r} ID",
                context={"operation": operation, "name": name, "resource_group": resource_group},
            )

        logger.info(f"Front Door Firewall Policy {name!r} written with ID {resource_id}")
        return resource_id, self.read(resource_id, ctx)

    def read(self, resource_id: str, ctx: Optional[CallContext] = None) -> Dict[str, Any]:
        """Rebuild the full attribute map from the remote policy.

        Args:
            resource_id: Durable ID of the policy
            ctx: Call context

        Returns:
            Attribute map reflecting the remote object

        Raises:
            ResourceIdParseError: If the ID is malformed
            ValidationError: If the service returns values the adapter does not know
            NotFound: If the policy no longer exists
            RemoteCallError: For any other API failure
        """
        ctx = ctx or CallContext()
        resource_group, name = _split_id(resource_id, "Read")

        try:
            response = self.client.get(resource_group, name, ctx)
        except RemoteCallError as e:
            raise _wrap(
                e,
                f"Error retrieving Front Door Firewall Policy {name!r}",
                "Read",
                name,
                resource_group,
            ) from e

        body = dict(response.body)
        body.setdefault("name", name)
        try:
            return flatten_policy_attributes(body, resource_group)
        except ValidationError as e:
            raise _wrap(
                e,
                f"Error flattening Front Door Firewall Policy {name!r}",
                "Read",
                name,
                resource_group,
            ) from e

    def import_state(
        self, resource_id: str, ctx: Optional[CallContext] = None
    ) -> Dict[str, Any]:
        """Import an existing policy by ID; the ID passes straight through to Read."""
        return self.read(resource_id, ctx)

    def delete(self, resource_id: str, ctx: Optional[CallContext] = None) -> None:
        """Delete a policy, treating a missing policy as already deleted.

        Raises:
            ResourceIdParseError: If the ID is malformed
            RemoteCallError: If the delete or its completion fails
        """
        ctx = ctx or CallContext()
        resource_group, name = _split_id(resource_id, "Delete")

        try:
            future = self.client.begin_delete(resource_group, name, ctx)
        except NotFound:
            logger.warning(f"Front Door Firewall Policy {name!r} already deleted")
            return
        except RemoteCallError as e:
            raise _wrap(
                e,
                f"Error deleting Front Door Firewall Policy {name!r}",
                "Delete",
                name,
                resource_group,
            ) from e

        try:
            future.wait(ctx)
        except NotFound:
            logger.warning(f"Front Door Firewall Policy {name!r} disappeared during delete")
        except RemoteCallError as e:
            if future.response().was_not_found:
                return
            raise _wrap(
                e,
                f"Error waiting for deletion of Front Door Firewall Policy {name!r}",
                "Delete",
                name,
                resource_group,
            ) from e
        logger.info(f"Front Door Firewall Policy {name!r} deleted")
