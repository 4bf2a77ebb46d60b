"""Completion provider implementations for shellask."""
