"""Identity resolution, payload building and task handlers for clickup-mcp."""
