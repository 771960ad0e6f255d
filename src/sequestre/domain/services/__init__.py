"""
Domain services package.

Interfaces live in ``i_*`` modules; pure helpers (commitment hashing, unit
conversion) are imported from their modules directly.
"""
