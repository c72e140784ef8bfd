"""
LensCritique Backend: API Routes Package
=========================================

What:  HTTP route handlers, one module per client screen.

Route Inventory:
    - auth.py:        /api/auth/sign-up, sign-in, sign-out, session
    - navigation.py:  GET  /api/navigation
    - onboarding.py:  POST /api/onboarding
    - feed.py:        GET  /api/feed, /api/feed/lucky-match; POST /api/feed/seed-demo
    - posts.py:       POST /api/posts; GET /api/posts/{id}; POST /api/posts/{id}/reviews
    - profile.py:     GET  /api/profile
    - admin.py:       /api/admin/...
    - health.py:      GET  /health

Handlers stay thin: read the request, call one service, shape the response.
Guards live in dependencies.py.
"""
