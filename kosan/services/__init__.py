"""
Service layer for the kos booking client.
"""
