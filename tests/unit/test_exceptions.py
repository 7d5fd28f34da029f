"""Unit tests for custom exception types."""

import unittest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from wafpolicy.exceptions import (
    FrontDoorWafError,
    ValidationError,
    ResourceIdParseError,
    RemoteCallError,
    NotFound,
    NotFoundAfterCreate,
    ResourceAlreadyExistsError,
    ConfigurationError,
    SourceParsingError,
)


class TestFrontDoorWafError(unittest.TestCase):
    """Test base FrontDoorWafError exception class."""

    def test_basic_error_message(self):
        error = FrontDoorWafError("Test error message")
        self.assertEqual(error.message, "Test error message")
        self.assertEqual(error.context, {})
        self.assertEqual(str(error), "Test error message")

    def test_error_with_context(self):
        context = {"operation": "Create", "name": "policy1", "resource_group": "rg"}
        error = FrontDoorWafError("Upsert failed", context=context)

        self.assertEqual(error.context, context)
        self.assertIn("operation=Create", str(error))
        self.assertIn("name=policy1", str(error))
        self.assertIn("resource_group=rg", str(error))

    def test_context_rendered_in_brackets(self):
        error = FrontDoorWafError("Read failed", context={"operation": "Read"})
        self.assertEqual(str(error), "Read failed [operation=Read]")

    def test_unknown_context_values_are_omitted(self):
        error = ResourceIdParseError(
            "Bad ID", context={"operation": "Delete", "resource_group": None}
        )
        self.assertEqual(str(error), "Bad ID [operation=Delete]")

    def test_context_is_copied(self):
        context = {"operation": "Create"}
        error = FrontDoorWafError("boom", context=context)
        context["operation"] = "Delete"
        self.assertEqual(error.context["operation"], "Create")


class TestHierarchy(unittest.TestCase):
    """Test the exception hierarchy relationships."""

    def test_validation_errors(self):
        self.assertTrue(issubclass(ValidationError, FrontDoorWafError))
        self.assertTrue(issubclass(ResourceIdParseError, ValidationError))

    def test_not_found_is_remote_call_error(self):
        error = NotFound("gone", status_code=404)
        self.assertIsInstance(error, RemoteCallError)
        self.assertEqual(error.status_code, 404)

    def test_remote_call_error_status_defaults_to_none(self):
        self.assertIsNone(RemoteCallError("boom").status_code)

    def test_not_found_after_create_is_not_a_remote_error(self):
        self.assertFalse(issubclass(NotFoundAfterCreate, RemoteCallError))

    def test_already_exists_carries_id(self):
        error = ResourceAlreadyExistsError("exists", resource_id="/subscriptions/x")
        self.assertEqual(error.resource_id, "/subscriptions/x")
        self.assertIsInstance(error, FrontDoorWafError)

    def test_other_errors(self):
        self.assertIsInstance(ConfigurationError("bad"), FrontDoorWafError)
        self.assertIsInstance(SourceParsingError("bad"), FrontDoorWafError)


if __name__ == "__main__":
    unittest.main()
