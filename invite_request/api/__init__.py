"""
Page router assembly.
"""
from fastapi import APIRouter
from .endpoints import apply, pages, signin

api_router = APIRouter()

api_router.include_router(pages.router, tags=["pages"])
api_router.include_router(signin.router, tags=["signin"])
api_router.include_router(apply.router, tags=["apply"])
