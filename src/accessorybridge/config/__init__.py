"""
Layered configuration files, validated against a schema, applied to settings objects.
"""
