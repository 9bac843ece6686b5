"""
                        Smart PoS Hub

Order routing backend for a restaurant point-of-sale suite: cashier,
kitchen display, waitress pickup view and customer self-order app,
kept in sync through a Socket.IO event hub.

License: MIT
"""

__version__ = "1.0.0"
