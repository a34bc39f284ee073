import unittest

from decoding.config import OracleSettings
from decoding.endpoints import resolve_completion_url, resolve_from_settings
from decoding.errors import ConfigurationError


class TestResolveCompletionUrl(unittest.TestCase):
    def test_full_deployment_url_gets_completion_path(self):
        url = resolve_completion_url("https://x.openai.azure.com/openai/deployments/dep/", api_version="2024-06-01")
        self.assertEqual(url, "https://x.openai.azure.com/openai/deployments/dep/chat/completions?api-version=2024-06-01")

    def test_full_url_with_completion_path_is_not_doubled(self):
        url = resolve_completion_url(
            "https://x.openai.azure.com/openai/deployments/dep/chat/completions?api-version=2023-05-15",
            api_version="2024-06-01",
        )
        self.assertEqual(url.count("/chat/completions"), 1)
        self.assertIn("api-version=2024-06-01", url)
        self.assertNotIn("2023-05-15", url)

    def test_full_url_ignores_deployment_name(self):
        url = resolve_completion_url("https://x.openai.azure.com/openai/deployments/dep", deployment="other")
        self.assertIn("/deployments/dep/", url)

    def test_base_endpoint_with_deployment(self):
        url = resolve_completion_url("https://x.openai.azure.com/", deployment="gpt4o", api_version="2024-06-01")
        self.assertEqual(url, "https://x.openai.azure.com/openai/deployments/gpt4o/chat/completions?api-version=2024-06-01")

    def test_base_endpoint_without_deployment_fails(self):
        with self.assertRaises(ConfigurationError):
            resolve_completion_url("https://x.openai.azure.com")

    def test_empty_endpoint_fails(self):
        with self.assertRaises(ConfigurationError):
            resolve_completion_url("   ", deployment="dep")

    def test_from_settings(self):
        settings = OracleSettings(endpoint="https://x.openai.azure.com", api_key="k", deployment="d", api_version="v1")
        self.assertTrue(resolve_from_settings(settings).endswith("/openai/deployments/d/chat/completions?api-version=v1"))


if __name__ == "__main__":
    unittest.main()
