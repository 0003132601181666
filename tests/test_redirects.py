import unittest

from auth.redirects import resolve_redirect

APP_URL = "https://app.example.com"
BASE_URL = "https://auth.example.com"


class TestResolveRedirect(unittest.TestCase):
    def test_same_origin_absolute_url_is_unchanged(self):
        self.assertEqual(
            resolve_redirect("https://app.example.com/dashboard", BASE_URL, APP_URL),
            "https://app.example.com/dashboard",
        )
        self.assertEqual(
            resolve_redirect("https://APP.example.com:443/x?y=1", BASE_URL, APP_URL),
            "https://APP.example.com:443/x?y=1",
        )

    def test_other_origin_falls_back_to_app(self):
        for url in (
            "https://evil.example.com/x",
            "http://app.example.com/dashboard",
            "https://app.example.com:8443/dashboard",
            "https://app.example.com.evil.com/",
            "https://app.example.com@evil.com/",
        ):
            self.assertEqual(resolve_redirect(url, BASE_URL, APP_URL), APP_URL, url)

    def test_path_relative_resolves_against_base(self):
        self.assertEqual(resolve_redirect("/settings", BASE_URL, APP_URL), "https://auth.example.com/settings")
        self.assertEqual(
            resolve_redirect("/a/b?c=d", BASE_URL + "/api/auth", APP_URL),
            "https://auth.example.com/a/b?c=d",
        )

    def test_scheme_and_protocol_relative_tricks_fall_back(self):
        for url in ("javascript:alert(1)", "//evil.example.com", "/\\evil.example.com", "settings", "", None):
            self.assertEqual(resolve_redirect(url, BASE_URL, APP_URL), APP_URL, repr(url))

    def test_control_characters_fall_back(self):
        for url in (
            "/\t/evil.example.com/x",
            "/\r/evil.example.com/x",
            "/\n/evil.example.com/x",
            "/\t\\evil.example.com/x",
            "/settings\x00",
            "https://app.example.com/\n",
        ):
            self.assertEqual(resolve_redirect(url, BASE_URL, APP_URL), APP_URL, repr(url))

    def test_malformed_port_falls_back(self):
        self.assertEqual(resolve_redirect("https://app.example.com:99999/", BASE_URL, APP_URL), APP_URL)


if __name__ == "__main__":
    unittest.main()
