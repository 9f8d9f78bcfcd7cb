"""
Core package for the kos booking client.
"""
