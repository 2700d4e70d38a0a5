"""GHG emissions accounting and reduction-planning engine."""
