"""CLI command groups. Each module exposes register(app)."""
