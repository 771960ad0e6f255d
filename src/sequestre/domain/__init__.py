"""Sequestre domain layer."""
