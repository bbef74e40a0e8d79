# Routes package init
"""
PIEM Backend — API Routes Package
==================================

What:  HTTP route handlers that accept requests and return envelopes.
How:   The four resource routers come from the `crud.build_resource_router`
       factory; health and auth are hand-written.

Route Inventory:
    - health.py:      GET /                  (API banner)
                      GET /health            (process + store health)
    - users.py:       /users[/{id}]
    - categories.py:  /categories[/{id}]
    - inventory.py:   /inventory[/{id}]
    - suppliers.py:   /supplier[/{id}]
    - auth.py:        GET /login, /github/callback, /logout  (GitHub OAuth only)

Design Principle:
    Routes stay thin: parse the request, call ResourceService, wrap the
    result. Business rules live in services/.
"""
