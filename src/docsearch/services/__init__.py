"""
Domain services for DocSearch.

Contains the main business logic services:
- hybrid_search: Lexical and concept-vector document search with ranking
"""
