"""Presentation layer packages."""
