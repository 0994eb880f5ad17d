"""Provision users and role memberships from one source of truth into Keycloak, authentik and GitLab."""

__version__ = "0.1.0"
