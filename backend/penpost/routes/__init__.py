# Routes package init
"""
Penpost Backend — API Routes Package
======================================

Route Inventory:
    - auth.py:        POST /api/auth/register, POST /api/auth/login, GET /api/auth/me
    - posts.py:       GET/POST /api/posts, GET/PUT/DELETE /api/posts/{id}
    - categories.py:  GET/POST /api/categories, GET/PUT/DELETE /api/categories/{id}
    - uploads.py:     GET /uploads/{filename}
    - health.py:      GET /health

Routes stay thin: pull values out of the request, call a service, set the
status code and headers. Errors propagate to the handlers in main.py.
"""
