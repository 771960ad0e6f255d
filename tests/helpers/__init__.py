"""Shared test doubles for Sequestre tests."""
