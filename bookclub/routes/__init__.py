"""HTTP routes (Flask blueprints)."""
