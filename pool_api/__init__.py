"""
pool_api - read/write facade over the insurance pool ecosystem contracts.
"""

__version__ = "0.1.0"
