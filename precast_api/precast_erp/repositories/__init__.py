"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. They never
commit on their own account except through the explicit `commit` helper, so a
service can group several writes into one transaction.
"""
