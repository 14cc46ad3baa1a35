"""Tests for the ordered pairing-code approval strategies."""

import httpx
import pytest

from src.jellybridge.core.exceptions import (
    DownstreamError,
    DownstreamUnavailable,
    InvalidPairingCodeError,
    PairingApprovalError,
)
from src.jellybridge.core.models.pairing import ApprovalStrategy
from src.jellybridge.core.services.downstream.client import JellyfinClient
from src.jellybridge.core.services.pairing.authorization_bridge import AuthorizationBridge
from src.jellybridge.entities.local_user import LocalUser
from src.jellybridge.runtime.config.config_data import BridgeConfig, ConfigData, DownstreamConfig

APPROVALS = ("approve_code:token", "approve_code:user_id", "approve_code:user_hint", "approve_code:bare")


@pytest.fixture
def bridge(downstream, vault, test_config):
    return AuthorizationBridge(downstream, vault, config=test_config)


@pytest.fixture
def user(downstream, vault) -> LocalUser:
    account = downstream.add_account("jane", password="shadow-pw")
    return LocalUser(
        id=account.id,
        downstream_user_id=account.id,
        downstream_username="jane",
        email="jane@example.com",
        shadow_password_ciphertext=vault.encrypt("shadow-pw"),
    )


def attempted(downstream) -> list[str]:
    return [name for name, _ in downstream.calls if name in APPROVALS]


class TestAuthorizationBridge:
    """Test strategy ordering, fallthrough and attribution."""

    @pytest.mark.asyncio
    async def test_delegated_strategy_first(self, bridge, downstream, user):
        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.DELEGATED
        assert result.attributed is True
        assert result.warning is None
        assert attempted(downstream) == ["approve_code:token"]
        assert downstream.calls_to("approve_code:token")[0]["token"] == f"token-{user.downstream_user_id}"

    @pytest.mark.asyncio
    async def test_code_is_trimmed(self, bridge, downstream, user):
        await bridge.approve_code("  123456 ", user)
        assert downstream.calls_to("approve_code:token")[0]["code"] == "123456"

    @pytest.mark.asyncio
    async def test_without_shadow_password_uses_user_id(self, bridge, downstream, user):
        user = user.model_copy(update={"shadow_password_ciphertext": None})

        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.PRIVILEGED_USER_ID
        assert result.attributed is True
        assert downstream.calls_to("approve_code:user_id")[0]["user_id"] == user.downstream_user_id
        assert downstream.calls_to("authenticate_by_name") == []

    @pytest.mark.asyncio
    async def test_undecryptable_shadow_password_falls_through(self, bridge, downstream, user):
        user = user.model_copy(update={"shadow_password_ciphertext": "Zm9yZWlnbiBjaXBoZXJ0ZXh0IGJsb2I="})

        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.PRIVILEGED_USER_ID

    @pytest.mark.asyncio
    async def test_wrong_shadow_password_falls_through(self, bridge, downstream, user):
        downstream.passwords[user.downstream_user_id] = "changed-by-admin"

        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.PRIVILEGED_USER_ID
        assert attempted(downstream) == ["approve_code:user_id"]

    @pytest.mark.asyncio
    async def test_falls_through_to_user_hint(self, bridge, downstream, user):
        downstream.rejected_modes = {"token"}
        downstream.failures["approve_code:user_id"] = DownstreamError("bad request", status_code=400)

        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.PRIVILEGED_USER_HINT
        assert result.attributed is True
        assert attempted(downstream) == ["approve_code:token", "approve_code:user_id", "approve_code:user_hint"]

    @pytest.mark.asyncio
    async def test_bare_strategy_carries_warning(self, bridge, downstream, user):
        downstream.rejected_modes = {"token", "user_id"}
        downstream.failures["approve_code:user_hint"] = DownstreamUnavailable("timed out")

        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.PRIVILEGED_BARE
        assert result.attributed is False
        assert result.requires_warning
        assert attempted(downstream) == list(APPROVALS)

    @pytest.mark.asyncio
    async def test_bare_strategy_can_be_disabled(self, downstream, vault, user):
        config = ConfigData(bridge=BridgeConfig(allow_unattributed_approval=False))
        bridge = AuthorizationBridge(downstream, vault, config=config)
        downstream.rejected_modes = {"token", "user_id", "user_hint"}

        with pytest.raises(PairingApprovalError):
            await bridge.approve_code("123456", user)
        assert "approve_code:bare" not in attempted(downstream)

    @pytest.mark.asyncio
    async def test_every_strategy_failing(self, bridge, downstream, user):
        downstream.rejected_modes = {"token", "user_id", "user_hint", "bare"}

        with pytest.raises(PairingApprovalError) as exc_info:
            await bridge.approve_code("123456", user)
        assert "privileged_bare" in exc_info.value.detail

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["", "   ", None])
    async def test_blank_code(self, bridge, downstream, user, code):
        with pytest.raises(InvalidPairingCodeError):
            await bridge.approve_code(code, user)
        assert downstream.calls == []

    @pytest.mark.asyncio
    async def test_non_json_reply_from_media_server_falls_through(self, vault, test_config):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(dict(request.url.params))
            if "userId" in request.url.params:
                return httpx.Response(200, text="<html>Sign in to continue</html>")
            return httpx.Response(204)

        client = JellyfinClient(
            DownstreamConfig(url="jellyfin.test", api_key="service-key"), transport=httpx.MockTransport(handler)
        )
        bridge = AuthorizationBridge(client, vault, config=test_config)
        user = LocalUser(id="u1", downstream_user_id="d1", email="jane@example.com")

        result = await bridge.approve_code("123456", user)

        assert result.strategy == ApprovalStrategy.PRIVILEGED_USER_HINT
        assert seen == [{"code": "123456", "userId": "d1"}, {"code": "123456"}]
