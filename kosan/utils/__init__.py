"""
Utility helpers for the kos booking client.
"""
