"""HTTP service exposing rating search and non-interactive submission."""
