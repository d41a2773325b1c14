"""Dreem - dream journal with draft-safe editing."""
