"""Concrete printer fleet FOTA backend."""
