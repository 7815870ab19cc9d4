"""Utility modules for gkeyman."""
