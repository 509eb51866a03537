"""Licence finder services: normalisation, matching rules and reconciliation."""
