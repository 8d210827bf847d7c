"""
Cache Domain Module

Entities, value objects, expiration rules, payload codec and repository
contract for the distributed cache.
"""
