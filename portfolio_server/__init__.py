"""
MEXC Portfolio Server
Read-only futures account snapshot (equity, PNL, best/worst trades) for a static frontend
"""

__version__ = "1.0.0"
