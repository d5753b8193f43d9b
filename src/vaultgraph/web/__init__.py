"""JSON API over GraphService (optional `web` extra)."""
