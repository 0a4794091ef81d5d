"""Keycloak operator reconciliation and synchronization engine."""
