"""
Budget Kernel

Shared foundation for the brand budget allocation engine:
- Immutable domain records (requests, sales, distribution results)
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- SQLAlchemy declarative base for the persistence adapter
"""

__version__ = "0.1.0"
