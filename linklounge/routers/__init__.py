"""
FastAPI routers grouped by domain (auth, users, lounges).

Each module exposes an APIRouter included by linklounge.app; routers only
translate HTTP input/output and delegate to services.
"""
