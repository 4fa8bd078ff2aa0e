"""Levant VA flight operations backend."""
