"""
Authentication app.

Owns the User and Profile models, the marketplace role, and the
AuthContext passed into service calls. Token issuance is handled by
djangorestframework-simplejwt.
"""
