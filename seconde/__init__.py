"""Seconde - product discovery backend for a second-hand fashion marketplace.

Geo-distance search, popularity decay, image-embedding similarity, a
denormalized search index and the scheduled jobs that keep it fresh.
"""

__version__ = "0.1.0"
__author__ = "Seconde Team"
