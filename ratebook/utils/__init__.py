"""Shared helpers for :mod:`ratebook`."""
