"""SceneState MCP server package."""
