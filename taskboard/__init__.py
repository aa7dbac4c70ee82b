"""Collaborative task board backend."""
