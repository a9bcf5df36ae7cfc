"""Service layer: whitelist registry, token manager and their ports."""
