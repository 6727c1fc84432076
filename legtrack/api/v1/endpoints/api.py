from fastapi import APIRouter

from legtrack.api.v1.endpoints import shipment_legs, shipments

api_router = APIRouter()

api_router.include_router(shipments.router, prefix="/shipments", tags=["Shipments"])
api_router.include_router(shipment_legs.router, prefix="/shipment-legs", tags=["Shipment Legs"])
