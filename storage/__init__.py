"""
MongoDB storage for the catalog core.
"""
