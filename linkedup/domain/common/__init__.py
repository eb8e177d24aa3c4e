"""Shared domain helpers."""
