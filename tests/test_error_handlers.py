"""Tests for the app-wide error pages."""

from __future__ import annotations

import unittest

from google.api_core.exceptions import ServiceUnavailable

from estateportal import create_app
from estateportal.errors import (
    BracketInconsistentError,
    DuplicateResourceError,
    NotFoundError,
)


class ErrorHandlersTestCase(unittest.TestCase):
    """Test case for errors that reach the top of a request."""

    def setUp(self) -> None:
        self.app = create_app({"TESTING": True})

        @self.app.route("/raise/duplicate")
        def raise_duplicate():
            raise DuplicateResourceError("A team named 'Alpha' already exists.")

        @self.app.route("/raise/missing")
        def raise_missing():
            raise NotFoundError("Competition not found.")

        @self.app.route("/raise/inconsistent")
        def raise_inconsistent():
            raise BracketInconsistentError(stage="insert")

        @self.app.route("/raise/firestore")
        def raise_firestore():
            raise ServiceUnavailable("backend went away at 10.0.0.7")

        self.client = self.app.test_client()

    def test_app_error_keeps_its_status_and_message(self) -> None:
        with self.assertLogs(self.app.logger, level="WARNING") as logs:
            response = self.client.get("/raise/duplicate")

        self.assertEqual(response.status_code, 409)
        self.assertIn(b"already exists.", response.data)
        self.assertIn("DuplicateResourceError (409)", logs.output[0])

    def test_not_found_error_uses_404_page(self) -> None:
        response = self.client.get("/raise/missing")

        self.assertEqual(response.status_code, 404)
        self.assertIn(b"Page Not Found", response.data)
        self.assertIn(b"Competition not found.", response.data)

    def test_inconsistent_bracket_is_logged_as_error(self) -> None:
        with self.assertLogs(self.app.logger, level="ERROR") as logs:
            response = self.client.get("/raise/inconsistent")

        self.assertEqual(response.status_code, 500)
        self.assertIn(b"Bracket in inconsistent state, please retry.", response.data)
        self.assertIn("stage insert", logs.output[0])

    def test_firestore_error_hides_details(self) -> None:
        with self.assertLogs(self.app.logger, level="ERROR"):
            response = self.client.get("/raise/firestore")

        self.assertEqual(response.status_code, 500)
        self.assertIn(b"Competition data is unavailable right now.", response.data)
        self.assertNotIn(b"10.0.0.7", response.data)

    def test_unknown_page(self) -> None:
        response = self.client.get("/no-such-page")

        self.assertEqual(response.status_code, 404)
        self.assertIn(b"There is nothing at this address.", response.data)

    def test_unauthenticated_message(self) -> None:
        response = self.client.get("/competitions/")

        self.assertEqual(response.status_code, 401)
        self.assertIn(b"Please sign in to the estate portal to continue.", response.data)


if __name__ == "__main__":
    unittest.main()
