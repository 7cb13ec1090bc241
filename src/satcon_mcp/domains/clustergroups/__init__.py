"""Cluster group domain: membership reconciliation and lifecycle."""
