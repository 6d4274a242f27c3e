"""
                Restaurant Menu & Ordering

Menu catalog, per-session shopping cart and atomic checkout with
per-product stock guarding.
"""

__version__ = "1.0.0"
