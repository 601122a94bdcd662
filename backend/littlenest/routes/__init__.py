# Routes package init
"""
LittleNest Backend: API Routes Package
========================================

What:  HTTP route handlers that accept requests and return envelopes.
How:   Each route module handles one resource.

Route Inventory:
    - names.py:   /api/names/...          (public lookups, tracking, admin writes)
    - blogs.py:   /api/blogs/...          (public reads, author writes)
    - system.py:  /, /health, /media/...,  /api/system/admin-counts

Routes stay thin: extract request data, call a service, wrap the result
with http_response(). Business rules live in the services.
"""
