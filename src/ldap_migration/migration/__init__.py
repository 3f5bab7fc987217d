"""
Migration Module

Copies client organizational units and their users from LDAP into PostgreSQL.
"""
