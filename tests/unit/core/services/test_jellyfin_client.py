"""Tests for the media server REST client against a mocked transport."""

import json

import httpx
import pytest

from src.jellybridge.core.exceptions import (
    DownstreamError,
    DownstreamUnavailable,
    UsernameTakenError,
)
from src.jellybridge.core.services.downstream.client import DownstreamService, JellyfinClient
from src.jellybridge.runtime.config.config_data import DownstreamConfig


def make_client(handler):
    config = DownstreamConfig(url="jellyfin.test:8096", api_key="service-key")
    return JellyfinClient(config, transport=httpx.MockTransport(handler))


class Recorder:
    def __init__(self, responses):
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses[(request.method, request.url.path)]
        return response() if callable(response) else response


class TestJellyfinClient:
    """Test request shapes and error translation."""

    def test_satisfies_protocol(self):
        assert isinstance(make_client(Recorder({})), DownstreamService)

    def test_base_url_gets_scheme(self):
        assert DownstreamConfig(url="jellyfin:8096/").base_url == "http://jellyfin:8096"

    @pytest.mark.asyncio
    async def test_create_user(self):
        recorder = Recorder(
            {("POST", "/Users/New"): httpx.Response(200, json={"Id": "abc", "Name": "jane", "Policy": {}})}
        )
        user = await make_client(recorder).create_user("jane", "pw")

        assert user.id == "abc"
        request = recorder.requests[0]
        assert request.url.host == "jellyfin.test"
        assert request.headers["X-Emby-Token"] == "service-key"
        assert json.loads(request.content) == {"Name": "jane", "Password": "pw"}

    @pytest.mark.asyncio
    async def test_create_user_name_taken(self):
        recorder = Recorder(
            {("POST", "/Users/New"): httpx.Response(400, text="A user with the name 'jane' already exists.")}
        )
        with pytest.raises(UsernameTakenError):
            await make_client(recorder).create_user("jane", "pw")

    @pytest.mark.asyncio
    async def test_create_user_other_client_error(self):
        recorder = Recorder({("POST", "/Users/New"): httpx.Response(400, text="Invalid name")})
        with pytest.raises(DownstreamError) as exc_info:
            await make_client(recorder).create_user("jane", "pw")
        assert not isinstance(exc_info.value, UsernameTakenError)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_get_user_missing(self):
        recorder = Recorder({("GET", "/Users/nope"): httpx.Response(404)})
        assert await make_client(recorder).get_user("nope") is None

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        recorder = Recorder({("GET", "/Users"): httpx.Response(503)})
        with pytest.raises(DownstreamUnavailable):
            await make_client(recorder).list_users()

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DownstreamUnavailable):
            await make_client(handler).list_users()

    @pytest.mark.asyncio
    async def test_authenticate_by_name(self):
        recorder = Recorder(
            {("POST", "/Users/AuthenticateByName"): httpx.Response(200, json={"AccessToken": "user-token"})}
        )
        token = await make_client(recorder).authenticate_by_name("jane", "pw")

        assert token == "user-token"
        request = recorder.requests[0]
        assert request.headers["X-Emby-Authorization"].startswith("MediaBrowser Client=")
        assert "Token=" not in request.headers["X-Emby-Authorization"]
        assert json.loads(request.content) == {"Username": "jane", "Pw": "pw"}

    @pytest.mark.asyncio
    async def test_authenticate_without_token(self):
        recorder = Recorder({("POST", "/Users/AuthenticateByName"): httpx.Response(200, json={})})
        with pytest.raises(DownstreamError):
            await make_client(recorder).authenticate_by_name("jane", "pw")

    @pytest.mark.asyncio
    async def test_approve_with_user_token(self):
        recorder = Recorder({("POST", "/QuickConnect/Authorize"): httpx.Response(200, json=True)})
        assert await make_client(recorder).approve_code("123456", token="user-token") is True

        request = recorder.requests[0]
        assert request.url.params["code"] == "123456"
        assert 'Token="user-token"' in request.headers["X-Emby-Authorization"]
        assert "userId" not in request.url.params

    @pytest.mark.asyncio
    async def test_approve_with_user_id_param(self):
        recorder = Recorder({("POST", "/QuickConnect/Authorize"): httpx.Response(200, json=True)})
        await make_client(recorder).approve_code("123456", user_id="u1")

        request = recorder.requests[0]
        assert request.url.params["userId"] == "u1"
        assert request.headers["X-Emby-Token"] == "service-key"

    @pytest.mark.asyncio
    async def test_approve_with_user_hint(self):
        recorder = Recorder({("POST", "/QuickConnect/Authorize"): httpx.Response(204)})
        assert await make_client(recorder).approve_code("123456", user_hint="u1") is True

        header = recorder.requests[0].headers["X-Emby-Authorization"]
        assert 'UserId="u1"' in header
        assert 'Token="service-key"' in header

    @pytest.mark.asyncio
    async def test_approve_rejected(self):
        recorder = Recorder({("POST", "/QuickConnect/Authorize"): httpx.Response(200, json=False)})
        assert await make_client(recorder).approve_code("123456") is False

    @pytest.mark.asyncio
    async def test_disable_user_keeps_policy(self):
        recorder = Recorder(
            {
                ("GET", "/Users/u1"): httpx.Response(
                    200, json={"Id": "u1", "Name": "jane", "Policy": {"EnableAllFolders": False}}
                ),
                ("POST", "/Users/u1/Policy"): httpx.Response(204),
            }
        )
        await make_client(recorder).disable_user("u1")

        sent = json.loads(recorder.requests[1].content)
        assert sent == {"EnableAllFolders": False, "IsDisabled": True}

    @pytest.mark.asyncio
    async def test_disable_user_with_known_policy_skips_lookup(self):
        recorder = Recorder({("POST", "/Users/u1/Policy"): httpx.Response(204)})
        await make_client(recorder).disable_user("u1", {"EnableAllFolders": True})

        assert [(r.method, r.url.path) for r in recorder.requests] == [("POST", "/Users/u1/Policy")]
        assert json.loads(recorder.requests[0].content) == {"EnableAllFolders": True, "IsDisabled": True}

    @pytest.mark.asyncio
    async def test_update_password(self):
        recorder = Recorder({("POST", "/Users/u1/Password"): httpx.Response(204)})
        await make_client(recorder).update_password("u1", "new")
        assert json.loads(recorder.requests[0].content) == {"NewPw": "new", "ResetPassword": True}


class TestMalformedResponses:
    """Bodies that are not the JSON the server normally sends become DownstreamError."""

    @pytest.mark.asyncio
    async def test_html_approval_body(self):
        recorder = Recorder(
            {("POST", "/QuickConnect/Authorize"): httpx.Response(200, text="<html>proxy login</html>")}
        )
        with pytest.raises(DownstreamError, match="Expected JSON"):
            await make_client(recorder).approve_code("123456", user_id="u1")

    @pytest.mark.asyncio
    async def test_html_authentication_body(self):
        recorder = Recorder(
            {("POST", "/Users/AuthenticateByName"): httpx.Response(200, text="<html>maintenance</html>")}
        )
        with pytest.raises(DownstreamError):
            await make_client(recorder).authenticate_by_name("jane", "pw")

    @pytest.mark.asyncio
    async def test_array_authentication_body(self):
        recorder = Recorder({("POST", "/Users/AuthenticateByName"): httpx.Response(200, json=["AccessToken"])})
        with pytest.raises(DownstreamError, match="no access token"):
            await make_client(recorder).authenticate_by_name("jane", "pw")

    @pytest.mark.asyncio
    async def test_user_record_missing_fields(self):
        recorder = Recorder({("GET", "/Users/u1"): httpx.Response(200, json=[{"Id": "u1"}])})
        with pytest.raises(DownstreamError, match="Unexpected user record"):
            await make_client(recorder).get_user("u1")

    @pytest.mark.asyncio
    async def test_user_listing_not_an_array(self):
        recorder = Recorder({("GET", "/Users"): httpx.Response(200, json={"Items": []})})
        with pytest.raises(DownstreamError, match="not a JSON array"):
            await make_client(recorder).list_users()
