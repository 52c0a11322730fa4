"""
Discount Kernel

Domain types, persistence and lifecycle services for discount resolution:
- Immutable money and discount value objects
- Approval request lifecycle with single-decision guarantee
- Atomic discount allocation persistence with exact-sum validation
- Structured logging and typed errors
"""

__version__ = "0.1.0"
