"""MCP server exposing draftsync documents and Dropbox sync over stdio."""
