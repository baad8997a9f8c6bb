"""
Clients for external AWS services the publisher depends on.
"""
