import unittest

import httpx

from auth.exceptions import NetworkFailure
from auth.services.refresh_client import UpstreamRefreshClient
from auth.tokens import SessionToken, TokenError
from tests.helpers import NOW, TOKEN_URL, RecordingTransport, fixed_clock, form_body, json_response, make_config


class TestUpstreamRefreshClient(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler, **config_overrides):
        self.transport = RecordingTransport(handler)
        self.http = httpx.AsyncClient(transport=self.transport)
        self.addAsyncCleanup(self.http.aclose)
        return UpstreamRefreshClient(make_config(**config_overrides), self.http, clock=fixed_clock())

    def _stale_token(self, **overrides) -> SessionToken:
        values = {
            "access_token": "at1",
            "refresh_token": "rt1",
            "expires_at": NOW - 10,
            "subject_id": "user-1",
        }
        values.update(overrides)
        return SessionToken(**values)

    async def test_posts_refresh_grant_form(self):
        client = self._client(lambda request: json_response(200, {"access_token": "at2", "expires_in": 300}))

        await client.refresh_access_token(self._stale_token())

        self.assertEqual(len(self.transport.requests), 1)
        request = self.transport.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), TOKEN_URL)
        self.assertTrue(request.headers["content-type"].startswith("application/x-www-form-urlencoded"))
        self.assertEqual(
            form_body(request),
            {
                "grant_type": "refresh_token",
                "client_id": "web",
                "client_secret": "s3cret",
                "refresh_token": "rt1",
            },
        )

    async def test_success_replaces_access_and_keeps_refresh_when_absent(self):
        client = self._client(lambda request: json_response(200, {"access_token": "at2", "expires_in": 300}))
        old = self._stale_token()

        refreshed = await client.refresh_access_token(old)

        self.assertEqual(refreshed.access_token, "at2")
        self.assertEqual(refreshed.refresh_token, "rt1")
        self.assertEqual(refreshed.expires_at, int(NOW + 300))
        self.assertGreater(refreshed.expires_at, old.expires_at)
        self.assertIsNone(refreshed.error)
        self.assertEqual(old.access_token, "at1")

    async def test_success_rotates_refresh_token_when_supplied(self):
        client = self._client(
            lambda request: json_response(200, {"access_token": "at2", "refresh_token": "rt2", "expires_in": 60})
        )

        refreshed = await client.refresh_access_token(self._stale_token())

        self.assertEqual(refreshed.refresh_token, "rt2")
        self.assertEqual(refreshed.expires_at, int(NOW + 60))

    async def test_missing_or_bad_expires_in_uses_default_lifetime(self):
        for payload in ({"access_token": "at2"}, {"access_token": "at2", "expires_in": 0}, {"access_token": "at2", "expires_in": "x"}):
            client = self._client(lambda request, payload=payload: json_response(200, payload))
            refreshed = await client.refresh_access_token(self._stale_token())
            self.assertEqual(refreshed.expires_at, int(NOW + 3600), payload)

    async def test_short_lifetime_never_moves_expiry_backwards(self):
        client = self._client(lambda request: json_response(200, {"access_token": "at2", "expires_in": 30}))
        old = self._stale_token(expires_at=NOW + 50)

        refreshed = await client.refresh_access_token(old)

        self.assertEqual(refreshed.access_token, "at2")
        self.assertEqual(refreshed.expires_at, int(NOW + 50))

        client = self._client(lambda request: json_response(200, {"access_token": "at3", "expires_in": 30}))
        refreshed = await client.refresh_access_token(self._stale_token(expires_at=str(NOW + 50)))
        self.assertEqual(refreshed.expires_at, int(NOW + 50))

    async def test_missing_configuration_fails_without_network(self):
        for overrides in ({"OIDC_ISSUER": None}, {"OIDC_CLIENT_ID": None}, {"OIDC_CLIENT_SECRET": ""}):
            client = self._client(lambda request: json_response(200, {"access_token": "at2"}), **overrides)
            result = await client.refresh_access_token(self._stale_token())
            self.assertEqual(result.error, TokenError.REFRESH_FAILED, overrides)
            self.assertEqual(self.transport.requests, [])

    async def test_missing_refresh_token_fails_without_network(self):
        client = self._client(lambda request: json_response(200, {"access_token": "at2"}))

        result = await client.refresh_access_token(self._stale_token(refresh_token=None))

        self.assertEqual(result.error, TokenError.REFRESH_FAILED)
        self.assertEqual(self.transport.requests, [])

    async def test_rejected_response_yields_error_token_after_one_attempt(self):
        client = self._client(lambda request: json_response(400, {"error": "invalid_grant"}))

        result = await client.refresh_access_token(self._stale_token())

        self.assertEqual(result.error, TokenError.REFRESH_FAILED)
        self.assertEqual(len(self.transport.requests), 1)

    async def test_success_without_access_token_is_rejected(self):
        client = self._client(lambda request: json_response(200, {"token_type": "Bearer"}))
        result = await client.refresh_access_token(self._stale_token())
        self.assertEqual(result.error, TokenError.REFRESH_FAILED)

        client = self._client(lambda request: httpx.Response(200, content=b"<html>"))
        result = await client.refresh_access_token(self._stale_token())
        self.assertEqual(result.error, TokenError.REFRESH_FAILED)

    async def test_transport_failure_raises_network_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = self._client(refuse)
        with self.assertRaises(NetworkFailure):
            await client.refresh_access_token(self._stale_token())

    async def test_timeout_raises_network_failure(self):
        def hang(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = self._client(hang)
        with self.assertRaises(NetworkFailure):
            await client.refresh_access_token(self._stale_token())


if __name__ == "__main__":
    unittest.main()
