"""
Tenant Data Migration - Cassandra to Cassandra

Copies one tenant's rows out of a shared multi-tenant keyspace into an
isolated per-tenant keyspace, following the dependency order between
tables (principals before roles, roles before content, and so on).
"""

__version__ = "1.0.0"
