"""Tests for the document and catalog tools (doc_read, doc_write, file_*)."""

from __future__ import annotations

import mcp.types as types
import pytest

from draftsync.mcp.tools import ALL_SPECS, FILES_TOOLS
from draftsync.mcp.tools.registry import ToolRegistry


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry(ALL_SPECS)


def test_tool_names():
    assert [t.name for t in FILES_TOOLS] == [
        "doc_read",
        "doc_write",
        "file_list",
        "file_create",
        "file_rename",
        "file_select",
        "file_delete",
    ]


class TestReadWrite:
    async def test_write_then_read(self, registry, orchestrator, store):
        written = await registry.call_tool(
            "doc_write", {"text": "Chapter one"}, orchestrator
        )
        assert not written.isError
        assert store.get_document("doc-1").text == "Chapter one"

        result = await registry.call_tool("doc_read", {}, orchestrator)

        assert _text(result) == "Chapter one"
        assert result.structuredContent["file_id"] == "doc-1"
        assert result.structuredContent["name"] == "Manuscript"
        assert result.structuredContent["last_synced_at"] is None
        assert result.structuredContent["has_conflict"] is False

    async def test_write_requires_text(self, registry, orchestrator):
        result = await registry.call_tool("doc_write", {}, orchestrator)
        assert result.isError
        assert "Text must be a string" in _text(result)

    async def test_empty_text_clears_draft(self, registry, orchestrator):
        orchestrator.edit("something")
        await registry.call_tool("doc_write", {"text": ""}, orchestrator)
        assert orchestrator.document.text == ""

    async def test_read_without_document(self, registry, orchestrator):
        orchestrator.document = None
        result = await registry.call_tool("doc_read", {}, orchestrator)
        assert result.isError
        assert "not_found" in _text(result)


class TestCatalogTools:
    async def test_create_and_list(self, registry, orchestrator):
        created = await registry.call_tool(
            "file_create", {"name": "  Part   Two "}, orchestrator
        )
        assert created.structuredContent["file_id"] == "doc-2"

        result = await registry.call_tool("file_list", {}, orchestrator)

        assert result.structuredContent["active_file_id"] == "doc-2"
        names = [f["name"] for f in result.structuredContent["files"]]
        assert sorted(names) == ["Manuscript", "Part Two"]
        assert "* Part Two [doc-2]" in _text(result)

    async def test_create_rejects_blank_name(self, registry, orchestrator):
        result = await registry.call_tool(
            "file_create", {"name": "   "}, orchestrator
        )
        assert result.isError
        assert "Name cannot be empty" in _text(result)
        assert len(orchestrator.files) == 1

    async def test_rename(self, registry, orchestrator):
        result = await registry.call_tool(
            "file_rename", {"name": "Draft A"}, orchestrator
        )
        assert 'Renamed current manuscript to "Draft A".' in _text(result)
        assert orchestrator.files[0].name == "Draft A"

    async def test_select(self, registry, orchestrator):
        orchestrator.create_file("Second")

        result = await registry.call_tool(
            "file_select", {"file_id": "doc-1"}, orchestrator
        )

        assert not result.isError
        assert orchestrator.active_file_id == "doc-1"

    async def test_select_unknown(self, registry, orchestrator):
        result = await registry.call_tool(
            "file_select", {"file_id": "missing"}, orchestrator
        )
        assert result.isError
        assert "Use file_list" in _text(result)

    async def test_select_rejects_path_like_id(self, registry, orchestrator):
        result = await registry.call_tool(
            "file_select", {"file_id": "../secrets"}, orchestrator
        )
        assert result.isError
        assert "validation_error" in _text(result)

    async def test_delete(self, registry, orchestrator, remote):
        orchestrator.create_file("Second")

        result = await registry.call_tool("file_delete", {}, orchestrator)

        assert result.structuredContent["uploaded"] is True
        assert [f.id for f in orchestrator.files] == ["doc-1"]
        assert ("delete", "/mini-author-doc-2.md") in remote.calls


class TestReadOnlyMode:
    async def test_write_tools_hidden(self, orchestrator):
        registry = ToolRegistry(ALL_SPECS, read_only=True)

        with pytest.raises(ValueError, match="Unknown tool: doc_write"):
            await registry.call_tool("doc_write", {"text": "x"}, orchestrator)

        result = await registry.call_tool("doc_read", {}, orchestrator)
        assert not result.isError
