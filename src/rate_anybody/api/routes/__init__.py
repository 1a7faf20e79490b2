"""Router modules for the HTTP service."""
