"""Core configuration and signing primitives."""
