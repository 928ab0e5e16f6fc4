"""
Tenancy kernel: persistence, typed errors, structured logging and the
domain primitives shared by the engines and services.
"""

__version__ = "0.1.0"
