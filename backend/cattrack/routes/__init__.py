# Routes package init
"""
CatTrack Backend: API Routes Package
=====================================

Route Inventory:
    - cats.py:    /api/v1/cats         list, area, user, get, create,
                                        owner and admin update/delete
    - users.py:   /api/v1/users        list, register, token, me, get
    - auth.py:    POST /api/v1/auth/login
    - files.py:   GET  /uploads/{path}
    - health.py:  GET  /health

Routes stay thin: parse the request, call one service, shape the response.
Business rules and authorization gates live in the services.
"""
