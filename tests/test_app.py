"""Tests for the application factory."""

from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from mockfirestore import MockFirestore

from estateportal import create_app
from tests.conftest import mock_firestore_module, patch_mockfirestore

patch_mockfirestore()


class AppTestCase(unittest.TestCase):
    """Test case for the application factory and app-wide handlers."""

    def setUp(self) -> None:
        self.mock_db = MockFirestore()
        patcher = patch("estateportal.firestore", new=mock_firestore_module(self.mock_db))
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_default_config(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            app = create_app({"TESTING": True})
        self.assertTrue(app.testing)
        self.assertFalse(app.config["BRACKET_AUTO_ADVANCE_BYES"])
        self.assertEqual(app.config["FIRESTORE_BATCH_LIMIT"], 400)
        self.assertEqual(app.config["SECRET_KEY"], "dev")

    def test_config_from_environment(self) -> None:
        env = {
            "BRACKET_AUTO_ADVANCE_BYES": "true",
            "FIRESTORE_BATCH_LIMIT": "250",
            "SECRET_KEY": "s3cret",
        }
        with patch.dict(os.environ, env, clear=True):
            app = create_app({"TESTING": True})
        self.assertTrue(app.config["BRACKET_AUTO_ADVANCE_BYES"])
        self.assertEqual(app.config["FIRESTORE_BATCH_LIMIT"], 250)
        self.assertEqual(app.config["SECRET_KEY"], "s3cret")

    def test_firebase_not_initialized_when_testing(self) -> None:
        with patch("estateportal._init_firebase") as mock_init:
            create_app({"TESTING": True})
        mock_init.assert_not_called()

    def test_404_page(self) -> None:
        client = create_app({"TESTING": True}).test_client()
        response = client.get("/no-such-page")
        self.assertEqual(response.status_code, 404)
        self.assertIn(b"Page Not Found", response.data)

    def test_unknown_session_user_is_logged_out(self) -> None:
        app = create_app({"TESTING": True})
        client = app.test_client()
        with client.session_transaction() as sess:
            sess["user_id"] = "ghost"

        response = client.get("/competitions/")

        self.assertEqual(response.status_code, 401)
        with client.session_transaction() as sess:
            self.assertNotIn("user_id", sess)

    def test_root_lists_competitions(self) -> None:
        self.mock_db.collection("users").document("u1").set({"role": "resident"})
        app = create_app({"TESTING": True})
        client = app.test_client()
        with client.session_transaction() as sess:
            sess["user_id"] = "u1"

        with patch(
            "estateportal.competition.services.firestore",
            new=mock_firestore_module(self.mock_db),
        ):
            response = client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertIn(b"No competitions yet.", response.data)


if __name__ == "__main__":
    unittest.main()
