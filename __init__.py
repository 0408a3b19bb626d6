"""
Bar Order Relay - Guest drink orders delivered as chat messages
===============================================================

A small relay that accepts drink orders from a guest order form and hands
them to a local automation gateway, which delivers them to the host as a
chat message. Two parts:
1. The relay: token check, rate limit, field cleaning, forward to agent hook
2. The guest client: order form, per-device bar open/closed flag, SMS fallback

License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__license__ = "MIT"
