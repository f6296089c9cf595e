"""Ambient building blocks: configuration, exceptions, logging, CLI."""
