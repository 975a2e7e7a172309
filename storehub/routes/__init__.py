"""
StoreHub Backend: Routes Package
=================================

Route Inventory:
    - stores.py:   page routes (/, /stores, /store/{slug}, /add, /tags, /map,
                   /hearts, /stores/{id}/edit, POST /add, POST /add/{id})
    - api.py:      JSON routes under /api (search, near, heart)
    - uploads.py:  GET /uploads/{file}
    - health.py:   GET /health

Routes stay thin: read the request, call a repository or upload step,
shape the response.
"""
