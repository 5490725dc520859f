"""Goalie challenge lifecycle and settlement engine."""
