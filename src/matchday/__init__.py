"""Matchday: round-robin fixture generation and league standings."""
