"""
Payroll Kernel - shared infrastructure for the payroll calculation engine.

Provides:
- Structured JSON logging with request-scoped context
- A typed exception hierarchy with machine-readable codes
- Currency metadata (minor units) used by the rounding policies
"""

__version__ = "0.1.0"
