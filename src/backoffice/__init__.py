"""
Bank back-office core service.

Funds transfers between accounts plus heuristic analytics over
transaction aggregates, served through a small FastAPI app.
"""

__version__ = "1.0.0"
