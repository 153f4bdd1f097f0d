"""
API route modules, one per business area.

This package contains subrouters for:
- Contacts, Estimating, Projects and Drafting
- HR and Purchasing
- Yard, Quality, Shipping and Sales
- Reports: CSV/XLSX/PDF exports

Routers are included from precast_erp.api.main (under the /api/v1 prefix).
"""
