"""
Application layer - Use cases and services orchestrating ledger and mirror.
"""
