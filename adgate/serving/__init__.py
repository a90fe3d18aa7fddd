"""
Serving Module
HTTP surface over ingestion and decisions
"""
