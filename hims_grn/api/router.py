# hims_grn/api/router.py
from fastapi import APIRouter
from hims_grn.api import routes_inventory_grn

api_router = APIRouter()

# Inventory
api_router.include_router(routes_inventory_grn.router)
