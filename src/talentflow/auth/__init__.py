"""Authentication and authorization.

Learn: One authentication path shared by every router:
Users → email/password → JWT access/refresh tokens.

The access token's role claim ("admin" or "candidate") is what the role
gates check, and what the application lifecycle consults before any
status change.
"""
