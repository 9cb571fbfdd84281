"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter

from leadsync.api.v1.endpoints import leads

api_router = APIRouter()

api_router.include_router(leads.router)
