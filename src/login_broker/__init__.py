"""External login broker.

Maps identities authenticated at third-party providers onto local accounts,
establishes a local session and keeps enough provider state for logout.
"""

__version__ = "0.1.0"
