# Services package init
"""
LittleNest Backend: Services Layer
====================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services accept a session plus plain values, apply the business
       rules and return response schemas or raise application exceptions.

Service Inventory:
    - derivation:    Pure name derivation pipeline (slug, metadata, letters, numerology)
    - popularity:    Popularity score formula and similarity scoring
    - NameService:   Name lookup, search, recommendations, tracking and admin writes
    - BlogService:   Blog listing, lookup, search and author-owned writes
    - FileService:   Image upload validation, storage and deletion
"""
