# Shared Common Library for the Virtual Airline Operations Portal
# This package contains shared authentication, permissions, error handling,
# request middleware and model mixins used by the portal services.

__version__ = "1.0.0"
