"""
Tiles & marble quotation system: pricing, quotation documents and catalog storage.
"""

__version__ = "1.0.0"
