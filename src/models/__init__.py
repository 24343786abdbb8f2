"""Typed DTOs shared by routes and the playback session."""
