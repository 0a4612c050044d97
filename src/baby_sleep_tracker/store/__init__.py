"""Persistence policies shared by the store backends."""
