"""
Domain services.

Each service holds an AsyncSession, delegates queries to repositories and
enforces the business rules of one module.
"""
