"""Utility helpers for Tubely (logging setup, object key naming)."""
