"""
tenantvault — multi-tenant credential manager backend.

Tenants own vaults, vaults hold client-side encrypted credentials, and
users reach vaults through role-based memberships.
"""

__version__ = "0.1.0"
