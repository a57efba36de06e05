"""HTTP middleware shared by all routes."""
