"""
Reference data endpoints: countries, states, payment and shipping methods
"""
from fastapi import APIRouter

from storefront.core.auth import allow_anonymous
from storefront.repositories.reference_repository import ReferenceRepository

router = APIRouter()


@router.get("/countries")
@allow_anonymous
async def list_countries():
    """Countries with their states, by name"""
    return [country.model_dump() for country in ReferenceRepository().list_countries()]


@router.get("/states/{country_id}")
@allow_anonymous
async def list_states(country_id: int):
    return [state.model_dump() for state in ReferenceRepository().list_states(country_id)]


@router.get("/payment_methods")
@allow_anonymous
async def list_payment_methods():
    return [method.model_dump() for method in ReferenceRepository().list_payment_methods()]


@router.get("/shipping_methods")
@allow_anonymous
async def list_shipping_methods():
    return [method.to_dict() for method in ReferenceRepository().list_shipping_methods()]
