"""
Inventory Kernel

The shared foundation of the reconciliation engine:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Clock abstraction
- Immutable value objects (currencies, exchange rates, adjustment reasons)
- Declarative workflow types
- SQLAlchemy base classes for persistence
"""

__version__ = "0.1.0"
