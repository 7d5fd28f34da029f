"""Unit tests for the frontdoorwaf.py command line interface."""

import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from frontdoorwaf import cli
from wafpolicy.resource import FirewallPolicyResource
from wafpolicy.state import StateFile

from tests.fixtures.fake_client import FakePolicyClient
from tests.fixtures.policy_samples import POLICY_ID, RESOURCE_GROUP, full_policy

FIXTURES = Path(__file__).parent.parent / "fixtures"
VALID_SOURCE = str(FIXTURES / "frontdoor_terraform")
INVALID_SOURCE = str(FIXTURES / "frontdoor_terraform_invalid")
ADDRESS = "azurerm_frontdoor_firewall_policy.example"
POLICY_NAME = "examplepolicy"


class TestValidateCommand(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_valid_source(self):
        result = self.runner.invoke(cli, ["validate", "--source", VALID_SOURCE])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"{ADDRESS}: valid", result.output)

    def test_invalid_source(self):
        result = self.runner.invoke(cli, ["validate", "--source", INVALID_SOURCE])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ERROR", result.output)
        self.assertIn("mode", result.output)

    def test_git_clone_is_removed_after_parsing(self):
        clones = []

        def fake_clone(source, tempdir):
            shutil.copy(os.path.join(VALID_SOURCE, "main.tf"), tempdir)
            clones.append(tempdir)
            return tempdir

        with patch("wafpolicy.gitlibs.clone_files", side_effect=fake_clone):
            result = self.runner.invoke(
                cli, ["validate", "--source", "github.com/owner/repo"]
            )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"{ADDRESS}: valid", result.output)
        self.assertEqual(len(clones), 1)
        self.assertFalse(os.path.exists(clones[0]))

    def test_schema(self):
        result = self.runner.invoke(cli, ["schema"])
        self.assertEqual(result.exit_code, 0)
        schema = json.loads(result.output)
        self.assertIn("custom_rule", schema)
        self.assertTrue(schema["mode"]["required"])


class TestRemoteCommands(unittest.TestCase):
    """Commands that call the management API, run against an in-memory client."""

    def setUp(self):
        self.runner = CliRunner()
        self.client = FakePolicyClient()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.state_path = os.path.join(self.tmpdir.name, "state.json")
        patcher = patch(
            "frontdoorwaf._build_adapter",
            side_effect=lambda settings: FirewallPolicyResource(
                self.client, require_import=settings.require_import
            ),
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.tmpdir.cleanup)

    def invoke(self, *args):
        return self.runner.invoke(
            cli,
            list(args) + ["--state", self.state_path, "--subscription-id", "sub"],
        )

    def test_apply_then_plan(self):
        result = self.invoke("apply", "--source", VALID_SOURCE)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"{ADDRESS}: {POLICY_ID}", result.output)
        self.assertEqual(StateFile(self.state_path).get_id(ADDRESS), POLICY_ID)

        result = self.invoke("plan", "--source", VALID_SOURCE)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("is up to date", result.output)

    def test_plan_before_apply(self):
        result = self.invoke("plan", "--source", VALID_SOURCE)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"+ {ADDRESS} will be created", result.output)
        self.assertEqual(self.client.calls, [])

    def test_plan_shows_drift(self):
        self.invoke("apply", "--source", VALID_SOURCE)
        stored = self.client.policies[(RESOURCE_GROUP, POLICY_NAME)]
        stored["properties"]["policySettings"]["mode"] = "Detection"

        result = self.invoke("plan", "--source", VALID_SOURCE)
        self.assertIn("will be updated in-place", result.output)
        self.assertIn("~ mode: 'Detection' -> 'Prevention'", result.output)

    def renamed_source(self, name):
        folder = os.path.join(self.tmpdir.name, "renamed")
        os.makedirs(folder, exist_ok=True)
        text = Path(VALID_SOURCE, "main.tf").read_text()
        Path(folder, "main.tf").write_text(text.replace(f'"{POLICY_NAME}"', f'"{name}"'))
        return folder

    def test_rename_replaces_policy(self):
        self.invoke("apply", "--source", VALID_SOURCE)
        source = self.renamed_source("renamedpolicy")

        result = self.invoke("plan", "--source", source)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"-/+ {ADDRESS} must be replaced", result.output)
        self.assertIn(
            "~ name: 'examplepolicy' -> 'renamedpolicy' (forces replacement)",
            result.output,
        )

        result = self.invoke("apply", "--source", source)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(list(self.client.policies), [(RESOURCE_GROUP, "renamedpolicy")])
        self.assertTrue(
            StateFile(self.state_path).get_id(ADDRESS).endswith("/renamedpolicy")
        )
        self.assertLess(
            self.client.calls.index(("DELETE", RESOURCE_GROUP, POLICY_NAME)),
            self.client.calls.index(("PUT", RESOURCE_GROUP, "renamedpolicy")),
        )

    def test_name_case_change_updates_in_place(self):
        self.invoke("apply", "--source", VALID_SOURCE)
        source = self.renamed_source(POLICY_NAME.upper())

        result = self.invoke("apply", "--source", source)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertNotIn(("DELETE", RESOURCE_GROUP, POLICY_NAME), self.client.calls)

    def test_apply_invalid_source_makes_no_remote_call(self):
        result = self.invoke("apply", "--source", INVALID_SOURCE)
        self.assertEqual(result.exit_code, 1)
        self.assertEqual(self.client.calls, [])

    def test_show(self):
        self.invoke("apply", "--source", VALID_SOURCE)
        result = self.invoke("show", ADDRESS)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('"mode": "Prevention"', result.output)

    def test_show_unknown_address(self):
        result = self.invoke("show", "azurerm_frontdoor_firewall_policy.other")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("is not in state", result.output)

    def test_import(self):
        FirewallPolicyResource(self.client).create_or_update(full_policy())
        result = self.invoke("import", ADDRESS, POLICY_ID)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(
            StateFile(self.state_path).resources[ADDRESS]["attributes"], full_policy()
        )

    def test_destroy(self):
        self.invoke("apply", "--source", VALID_SOURCE)
        result = self.invoke("destroy")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(f"Destroyed {ADDRESS}", result.output)
        self.assertEqual(self.client.policies, {})
        self.assertEqual(StateFile(self.state_path).resources, {})


if __name__ == "__main__":
    unittest.main()
