import base64
import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from sheetboard.app import create_app
from sheetboard.config import Settings
from sheetboard.dependencies import get_generator
from sheetboard.gemini import NO_RESPONSE_TEXT, GeminiTextGenerator
from sheetboard.locks import LocalLock

PASSWORD = "9999"


class BoardApiTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(use_in_memory_backends=True)
        self.app = create_app(self.settings)
        self.client = TestClient(self.app)

    def _create(self, name="Title", text="Body", password=PASSWORD):
        return self.client.post(
            "/api/posts", json={"name": name, "text": text, "password": password}
        )

    def test_index_page(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])
        self.assertIn("Bulletin Board", response.text)
        self.assertIn('"/api"', response.text)

    def test_create_and_list_posts(self):
        response = self._create("First", "Hello")
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["post"]["id"], 1)

        self._create("Second", "World")
        listing = self.client.get("/api/posts").json()
        self.assertEqual([p["name"] for p in listing["posts"]], ["Second", "First"])
        self.assertEqual(
            listing["pagination"],
            {"current_page": 1, "total_pages": 1, "total_posts": 2},
        )

    def test_list_with_explicit_page_size(self):
        for i in range(5):
            self._create(f"p{i}")
        listing = self.client.get("/api/posts", params={"page": 3, "page_size": 2}).json()
        self.assertEqual([p["name"] for p in listing["posts"]], ["p0"])
        self.assertEqual(listing["pagination"]["total_pages"], 3)

    def test_update_and_delete(self):
        created = self._create("Old", "Text").json()["post"]

        updated = self.client.put(
            f"/api/posts/{created['id']}",
            json={"name": "New", "text": "Changed", "password": PASSWORD},
        )
        self.assertEqual(updated.status_code, 200)
        post = updated.json()["post"]
        self.assertEqual(post["name"], "New")
        self.assertEqual(post["created_at"], created["created_at"])

        deleted = self.client.post(
            f"/api/posts/{created['id']}/delete", json={"password": PASSWORD}
        )
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get("/api/posts").json()["posts"], [])

    def test_wrong_password_returns_structured_error(self):
        response = self._create(password="nope")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.json(),
            {"success": False, "error": "Incorrect password", "code": "AuthError"},
        )

    def test_unknown_post_returns_not_found(self):
        response = self.client.post("/api/posts/99/delete", json={"password": PASSWORD})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "NotFoundError")

    def test_verify_password(self):
        ok = self.client.post("/api/verify-password", json={"password": PASSWORD})
        bad = self.client.post("/api/verify-password", json={"password": "x"})
        self.assertEqual(ok.json(), {"valid": True})
        self.assertEqual(bad.json(), {"valid": False})

    def test_page_size_settings(self):
        self.assertEqual(
            self.client.get("/api/settings/display").json(), {"posts_per_page": 5}
        )

        rejected = self.client.put("/api/settings/page-size", json={"page_size": 7})
        self.assertEqual(rejected.status_code, 422)
        self.assertEqual(rejected.json()["code"], "ValidationError")

        accepted = self.client.put("/api/settings/page-size", json={"page_size": 10})
        self.assertEqual(accepted.json(), {"success": True, "posts_per_page": 10})
        self.assertEqual(
            self.client.get("/api/settings/display").json(), {"posts_per_page": 10}
        )

    def test_upload_image(self):
        data_url = "data:image/png;base64," + base64.b64encode(b"png").decode()
        response = self.client.post("/api/uploads/image", json={"data_url": data_url})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertIn("/bbs_files/image_", payload["image_url"])

    def test_upload_image_rejects_malformed_data(self):
        response = self.client.post(
            "/api/uploads/image", json={"data_url": "data:image/png,abcd"}
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["code"], "FormatError")

    def test_upload_file(self):
        data_url = "data:text/plain;base64," + base64.b64encode(b"hi").decode()
        response = self.client.post(
            "/api/uploads/file", json={"file_name": "notes.txt", "data_url": data_url}
        )
        payload = response.json()
        self.assertEqual(payload["file_name"], "notes.txt")
        self.assertIn("/bbs_files/notes.txt_", payload["file_url"])

    def test_generate_text(self):
        generator = MagicMock()
        generator.generate.return_value = "Polished post"
        self.app.dependency_overrides[get_generator] = lambda: generator

        response = self.client.post("/api/generate", json={"text": "rough notes"})
        self.assertEqual(response.json(), {"text": "Polished post"})
        generator.generate.assert_called_once_with("rough notes")

    def test_generate_without_api_key_is_still_text(self):
        self.app.state.settings = Settings(use_in_memory_backends=True, gemini_api_key=None)
        response = self.client.post("/api/generate", json={"text": "notes"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["text"].startswith("Error retrieving response"))

    def test_malformed_request_returns_structured_error(self):
        response = self.client.post("/api/posts", json={"name": "n", "text": "t"})
        self.assertEqual(response.status_code, 422)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["code"], "ValidationError")
        self.assertIn("password", payload["error"])

    def test_non_positive_page_returns_structured_error(self):
        response = self.client.get("/api/posts", params={"page": 0})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json(),
            {
                "success": False,
                "error": "page and page_size must be positive",
                "code": "ValidationError",
            },
        )

    def test_lock_backend_failure_returns_storage_error(self):
        self.client.get("/api/posts")
        services = self.app.state.services
        services.posts.lock = MagicMock()
        services.posts.lock.acquire.side_effect = ConnectionError("redis down")

        response = self._create()
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["code"], "StorageError")

    def test_generate_with_empty_part_returns_text(self):
        generator = GeminiTextGenerator(MagicMock(), LocalLock())
        part = MagicMock(text=None)
        generator.client.models.generate_content.return_value.candidates = [
            MagicMock(content=MagicMock(parts=[part]))
        ]
        self.app.dependency_overrides[get_generator] = lambda: generator

        response = self.client.post("/api/generate", json={"text": "notes"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"text": NO_RESPONSE_TEXT})

    def test_upload_empty_file(self):
        response = self.client.post(
            "/api/uploads/file",
            json={"file_name": "empty.txt", "data_url": "data:text/plain;base64,"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("/bbs_files/empty.txt_", response.json()["file_url"])

    def test_initialization_failure_is_structured(self):
        self.app.state.settings = Settings(
            use_in_memory_backends=False,
            database_url="not-a-valid-url://",
            spreadsheet_id=None,
        )
        response = self.client.get("/api/posts")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "InitializationError")


if __name__ == "__main__":
    unittest.main()
