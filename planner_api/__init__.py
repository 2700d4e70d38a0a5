"""GHG reduction planner HTTP API."""
