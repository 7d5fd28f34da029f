"""Unit tests for wafpolicy/resource.py against an in-memory client"""

import unittest

from wafpolicy.context import CallContext
from wafpolicy.exceptions import (
    NotFound,
    NotFoundAfterCreate,
    RemoteCallError,
    ResourceAlreadyExistsError,
    ResourceIdParseError,
    ValidationError,
)
from wafpolicy.models import normalize_attributes
from wafpolicy.resource import FirewallPolicyResource

from tests.fixtures.fake_client import FakePolicyClient, failing
from tests.fixtures.policy_samples import (
    POLICY_ID,
    POLICY_NAME,
    RESOURCE_GROUP,
    custom_rule,
    full_policy,
    minimal_policy,
)


class ResourceTestCase(unittest.TestCase):
    def setUp(self):
        self.client = FakePolicyClient()
        self.resource = FirewallPolicyResource(self.client)
        self.ctx = CallContext()


class TestSchema(ResourceTestCase):
    def test_type_name(self):
        self.assertEqual(self.resource.type_name, "azurerm_frontdoor_firewall_policy")

    def test_schema_attributes(self):
        schema = FirewallPolicyResource.schema()
        self.assertTrue(schema["name"]["required"])
        self.assertTrue(schema["name"]["force_new"])
        self.assertTrue(schema["location"]["computed"])
        self.assertEqual(schema["custom_rule"]["max_items"], 100)
        self.assertEqual(schema["mode"]["allowed"], ["Detection", "Prevention"])


class TestCreateOrUpdate(ResourceTestCase):
    def test_create_returns_id_and_attributes(self):
        resource_id, attributes = self.resource.create_or_update(full_policy(), self.ctx)

        self.assertEqual(resource_id, POLICY_ID)
        self.assertEqual(attributes, full_policy())
        self.assertEqual(
            [c[0] for c in self.client.calls], ["PUT", "GET", "GET"]
        )

    def test_create_without_custom_rules(self):
        _, attributes = self.resource.create_or_update(minimal_policy(), self.ctx)

        stored = self.client.policies[(RESOURCE_GROUP, POLICY_NAME)]
        self.assertNotIn("customRules", stored["properties"])
        self.assertEqual(attributes, normalize_attributes(minimal_policy()))

    def test_update_is_an_upsert(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        config = minimal_policy()
        config["mode"] = "Prevention"
        config["custom_rule"] = [custom_rule()]

        resource_id, attributes = self.resource.create_or_update(
            config, self.ctx, current_id=POLICY_ID
        )

        self.assertEqual(resource_id, POLICY_ID)
        self.assertEqual(attributes["mode"], "Prevention")
        self.assertEqual(len(attributes["custom_rule"]), 1)

    def test_too_many_rules_makes_no_remote_call(self):
        config = minimal_policy()
        config["custom_rule"] = [custom_rule(name=f"r{i}") for i in range(101)]

        with self.assertRaises(ValidationError):
            self.resource.create_or_update(config, self.ctx)
        self.assertEqual(self.client.calls, [])

    def test_unknown_enum_makes_no_remote_call(self):
        config = minimal_policy()
        config["custom_rule"] = [custom_rule(action="Deny")]

        with self.assertRaises(ValidationError):
            self.resource.create_or_update(config, self.ctx)
        self.assertEqual(self.client.calls, [])

    def test_upsert_error_carries_context(self):
        self.client.put_error = failing()

        with self.assertRaises(RemoteCallError) as cm:
            self.resource.create_or_update(minimal_policy(), self.ctx)

        error = cm.exception
        self.assertIn("Error creating", error.message)
        self.assertEqual(error.status_code, 500)
        self.assertEqual(error.context["operation"], "Create")
        self.assertEqual(error.context["name"], POLICY_NAME)
        self.assertEqual(error.context["resource_group"], RESOURCE_GROUP)

    def test_wait_error(self):
        self.client.wait_error = failing(message="CreateOrUpdate finished with status failed")

        with self.assertRaises(RemoteCallError) as cm:
            self.resource.create_or_update(minimal_policy(), self.ctx, current_id=POLICY_ID)

        self.assertIn("Error waiting for creation", cm.exception.message)
        self.assertEqual(cm.exception.context["operation"], "Update")

    def test_missing_id_after_create(self):
        self.client.drop_id = True

        with self.assertRaises(NotFoundAfterCreate) as cm:
            self.resource.create_or_update(minimal_policy(), self.ctx)
        self.assertEqual(cm.exception.context["name"], POLICY_NAME)

    def test_require_import_rejects_existing_policy(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        strict = FirewallPolicyResource(self.client, require_import=True)

        with self.assertRaises(ResourceAlreadyExistsError) as cm:
            strict.create_or_update(minimal_policy(), self.ctx)
        self.assertEqual(cm.exception.resource_id, POLICY_ID)

    def test_require_import_allows_new_policy(self):
        strict = FirewallPolicyResource(self.client, require_import=True)
        resource_id, _ = strict.create_or_update(minimal_policy(), self.ctx)
        self.assertEqual(resource_id, POLICY_ID)
        self.assertEqual(self.client.calls[0][0], "GET")


class TestRead(ResourceTestCase):
    def test_read_rebuilds_every_attribute(self):
        self.resource.create_or_update(full_policy(), self.ctx)
        self.assertEqual(self.resource.read(POLICY_ID, self.ctx), full_policy())

    def test_read_reflects_remote_changes(self):
        self.resource.create_or_update(full_policy(), self.ctx)
        stored = self.client.policies[(RESOURCE_GROUP, POLICY_NAME)]
        stored["properties"]["policySettings"]["mode"] = "Detection"
        del stored["properties"]["customRules"]

        attributes = self.resource.read(POLICY_ID, self.ctx)

        self.assertEqual(attributes["mode"], "Detection")
        self.assertEqual(attributes["custom_rule"], [])

    def test_read_missing_policy(self):
        with self.assertRaises(NotFound) as cm:
            self.resource.read(POLICY_ID, self.ctx)
        self.assertEqual(cm.exception.context["operation"], "Read")

    def test_read_bad_id(self):
        with self.assertRaises(ResourceIdParseError) as cm:
            self.resource.read("/subscriptions/sub", self.ctx)
        self.assertEqual(self.client.calls, [])
        self.assertEqual(cm.exception.context["operation"], "Read")
        self.assertEqual(cm.exception.context["name"], "/subscriptions/sub")

    def test_read_id_of_another_resource_type(self):
        other_id = POLICY_ID.replace("FrontDoorWebApplicationFirewallPolicies", "frontDoors")
        with self.assertRaises(ResourceIdParseError) as cm:
            self.resource.read(other_id, self.ctx)
        self.assertEqual(cm.exception.context["operation"], "Read")

    def test_read_unknown_remote_value_carries_context(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        stored = self.client.policies[(RESOURCE_GROUP, POLICY_NAME)]
        stored["properties"]["policySettings"]["mode"] = "Audit"

        with self.assertRaises(ValidationError) as cm:
            self.resource.read(POLICY_ID, self.ctx)

        context = cm.exception.context
        self.assertEqual(context["operation"], "Read")
        self.assertEqual(context["name"], POLICY_NAME)
        self.assertEqual(context["resource_group"], RESOURCE_GROUP)
        self.assertEqual(context["field"], "policySettings.mode")

    def test_import_state(self):
        self.resource.create_or_update(full_policy(), self.ctx)
        self.assertEqual(self.resource.import_state(POLICY_ID), full_policy())


class TestDelete(ResourceTestCase):
    def test_delete(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        self.resource.delete(POLICY_ID, self.ctx)
        self.assertNotIn((RESOURCE_GROUP, POLICY_NAME), self.client.policies)

    def test_delete_missing_policy_succeeds(self):
        self.resource.delete(POLICY_ID, self.ctx)
        self.assertEqual(self.client.calls, [("DELETE", RESOURCE_GROUP, POLICY_NAME)])

    def test_delete_twice(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        self.resource.delete(POLICY_ID, self.ctx)
        self.resource.delete(POLICY_ID, self.ctx)

    def test_not_found_while_waiting_succeeds(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        self.client.delete_wait_error = NotFound("Delete failed", status_code=404)
        self.resource.delete(POLICY_ID, self.ctx)

    def test_delete_error(self):
        self.client.delete_error = failing(status_code=409, message="Conflict: in use")

        with self.assertRaises(RemoteCallError) as cm:
            self.resource.delete(POLICY_ID, self.ctx)

        self.assertEqual(cm.exception.status_code, 409)
        self.assertEqual(cm.exception.context["operation"], "Delete")
        self.assertEqual(cm.exception.context["resource_group"], RESOURCE_GROUP)

    def test_delete_bad_id(self):
        with self.assertRaises(ResourceIdParseError) as cm:
            self.resource.delete("not-an-id", self.ctx)
        self.assertEqual(cm.exception.context["operation"], "Delete")
        self.assertEqual(self.client.calls, [])

    def test_delete_wait_error(self):
        self.resource.create_or_update(minimal_policy(), self.ctx)
        self.client.delete_wait_error = failing()

        with self.assertRaises(RemoteCallError) as cm:
            self.resource.delete(POLICY_ID, self.ctx)
        self.assertIn("Error waiting for deletion", cm.exception.message)


class TestRequiresReplacement(ResourceTestCase):
    def test_same_identity(self):
        self.assertEqual(self.resource.requires_replacement(POLICY_ID, minimal_policy()), [])

    def test_renamed_policy(self):
        config = dict(minimal_policy(), name="renamedpolicy")
        self.assertEqual(self.resource.requires_replacement(POLICY_ID, config), ["name"])

    def test_moved_resource_group(self):
        config = dict(minimal_policy(), resource_group_name="other-rg")
        self.assertEqual(
            self.resource.requires_replacement(POLICY_ID, config), ["resource_group_name"]
        )

    def test_case_only_change_is_not_a_replacement(self):
        config = dict(
            minimal_policy(),
            name=POLICY_NAME.upper(),
            resource_group_name=RESOURCE_GROUP.upper(),
        )
        self.assertEqual(self.resource.requires_replacement(POLICY_ID, config), [])

    def test_makes_no_remote_call(self):
        self.resource.requires_replacement(POLICY_ID, minimal_policy())
        self.assertEqual(self.client.calls, [])

    def test_bad_id(self):
        with self.assertRaises(ResourceIdParseError) as cm:
            self.resource.requires_replacement("not-an-id", minimal_policy())
        self.assertEqual(cm.exception.context["operation"], "Plan")


if __name__ == "__main__":
    unittest.main()
