"""Configuration, persistence, errors, observability and HTTP plumbing."""
