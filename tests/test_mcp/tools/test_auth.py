"""Tests for auth_start / auth_finish / auth_disconnect."""

from __future__ import annotations

import mcp.types as types
import pytest

from draftsync.mcp.tools import ALL_SPECS
from draftsync.mcp.tools.registry import ToolRegistry

CALLBACK = "http://localhost:53682/callback?code=abc&state=state-1"


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry(ALL_SPECS)


class TestAuthFlow:
    async def test_start_returns_url(self, registry, make_orchestrator, store):
        orchestrator = make_orchestrator()

        result = await registry.call_tool("auth_start", {}, orchestrator)

        url = result.structuredContent["authorize_url"]
        assert url.startswith("https://www.dropbox.com/oauth2/authorize")
        assert url in _text(result)
        assert store.get_pending_authorization().state == "state-1"

    async def test_finish_connects(self, registry, make_orchestrator, store):
        orchestrator = make_orchestrator()
        await registry.call_tool("auth_start", {}, orchestrator)

        result = await registry.call_tool(
            "auth_finish", {"callback_url": f"  {CALLBACK}  "}, orchestrator
        )

        assert result.structuredContent["status"] == "clean"
        assert orchestrator.token.access_token == "new-access"
        assert store.get_token().access_token == "new-access"
        assert store.get_pending_authorization() is None

    async def test_finish_requires_url(self, registry, make_orchestrator):
        result = await registry.call_tool(
            "auth_finish", {"callback_url": "  "}, make_orchestrator()
        )
        assert result.isError
        assert "callback_url cannot be empty" in _text(result)

    async def test_finish_without_code(self, registry, make_orchestrator):
        result = await registry.call_tool(
            "auth_finish",
            {"callback_url": "http://localhost:53682/callback?error=denied"},
            make_orchestrator(),
        )
        assert result.structuredContent["status"] == "skipped"

    async def test_no_app_key(self, registry, make_orchestrator):
        orchestrator = make_orchestrator(auth=False)

        result = await registry.call_tool("auth_start", {}, orchestrator)

        assert result.isError
        assert "DRAFTSYNC_APP_KEY" in _text(result)

    async def test_disconnect(self, registry, orchestrator, store):
        result = await registry.call_tool("auth_disconnect", {}, orchestrator)

        assert not result.isError
        assert orchestrator.token is None
        assert store.get_token() is None
