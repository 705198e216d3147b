"""Ambient infrastructure for the URI service: errors, settings, logging, retry, hashing and ORM."""
