"""Shared helpers for the Library Management API."""
