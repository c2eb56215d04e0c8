"""
                MenuCraft Orders

Order lifecycle and realtime kitchen synchronization backend for
multi-tenant restaurant ordering.

License: MIT
"""

__version__ = "1.0.0"
