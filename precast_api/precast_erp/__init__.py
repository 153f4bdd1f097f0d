"""
Precast ERP backend.

FastAPI service covering contacts, estimating, projects, drafting, HR,
purchasing, yard, quality, shipping and sales for precast concrete plants.
"""

__version__ = "0.1.0"
