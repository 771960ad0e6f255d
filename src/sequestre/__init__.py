"""
Sequestre - milestone escrow and stablecoin transfer service.
"""

__version__ = "0.1.0"
