"""
Core infrastructure for Tubely: error taxonomy, access token handling and the
MongoDB client lifecycle.
"""
