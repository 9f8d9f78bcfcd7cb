"""
Schemas for the kos booking client.
"""
