# Routes package init
"""
User Service — API Routes Package
==================================

Route Inventory:
    - users.py:   POST /users   (upload photo, publish user)
                  GET  /users   (list stored users)

Routes only translate HTTP to UserService calls and back; errors are
turned into responses by the handlers registered in main.py.
"""
