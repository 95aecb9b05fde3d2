import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from services.endpoint_codec import from_json, list_to_json, to_json
from services.endpoint_registry import EndpointRegistry, WriteOutcome
from services.errors import RegistryError
from services.identifier import extract_endpoint_identifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Endpoints"])


def get_registry(request: Request) -> EndpointRegistry:
    """The registry built at startup; tests swap in one backed by a fake store"""
    return request.app.state.registry


def _http_error(exc: RegistryError) -> HTTPException:
    # Server-side failures were logged where they happened and stay opaque to the client
    if exc.http_status >= 500:
        return HTTPException(status_code=exc.http_status, detail="Internal Server Error")
    logger.info("request rejected (%d): %s", exc.http_status, exc)
    return HTTPException(status_code=exc.http_status, detail=str(exc))


# 📋 List all endpoints
@router.get("/endpoints")
async def list_endpoints(registry: EndpointRegistry = Depends(get_registry)):
    try:
        endpoints = await registry.list_all()
    except RegistryError as e:
        raise _http_error(e)
    return Response(content=list_to_json(endpoints), media_type="application/json")


# 🔍 Get one endpoint
@router.get("/endpoints/{tail:path}")
async def get_endpoint(tail: str, registry: EndpointRegistry = Depends(get_registry)):
    try:
        identifier = extract_endpoint_identifier(f"/endpoints/{tail}")
        endpoint = await registry.read_one(identifier)
    except RegistryError as e:
        raise _http_error(e)
    return Response(content=to_json(endpoint), media_type="application/json")


# 🚀 Create or replace an endpoint
@router.post("/endpoints/{tail:path}")
async def post_endpoint(tail: str, request: Request, registry: EndpointRegistry = Depends(get_registry)):
    """
    Create or fully replace an endpoint.
    - 201 when the identifier was new, 204 when an existing record was overwritten
    - the identifier in the path must equal the one in the body
    """
    try:
        identifier = extract_endpoint_identifier(f"/endpoints/{tail}")
        endpoint = from_json(await request.body())
        outcome = await registry.write_one(identifier, endpoint)
    except RegistryError as e:
        raise _http_error(e)

    if outcome is WriteOutcome.CREATED:
        return Response(status_code=201)
    return Response(status_code=204)
