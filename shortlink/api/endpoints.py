"""
FastAPI Endpoints for the Shortener Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Rate policy admission (before anything else runs)
- Request parsing (Pydantic models)
- Delegating to the URL record service
- Shaping the HTTP response

Errors are not caught here: ShortenerError propagates to the exception
handlers registered in main.py, which map ErrorKind to a status code.

Routes:
- POST   /shorten                create   (create policy)
- GET    /shorten/{code}         resolve  (read policy)
- PUT    /shorten/{code}         update   (modify policy)
- DELETE /shorten/{code}         delete   (modify policy)
- GET    /shorten/{code}/stats   stats    (read policy)
- GET    /{code}                 resolve + 302 redirect (read policy)
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from shortlink.api.schemas import ErrorResponse, RecordResponse, TargetRequest
from shortlink.core.rate_limit import RatePolicyGate, get_client_identity
from shortlink.services.url_service import URLRecordService

router = APIRouter()


def error_responses(*status_codes: int) -> dict:
    """OpenAPI entries for the error statuses a route can return."""
    codes = (*status_codes, 429, 503)
    return {code: {"model": ErrorResponse} for code in codes}


def get_url_service(request: Request) -> URLRecordService:
    return request.app.state.url_service


def rate_limited(operation: str):
    """
    Dependency charging the caller against the global and `operation` policies.

    Sets RateLimit-* headers for the operation's policy on the response.
    """
    async def admit(request: Request, response: Response) -> None:
        gate: RatePolicyGate = request.app.state.rate_gate
        quota = await gate.admit(get_client_identity(request), operation)
        if quota is not None:
            response.headers.update(quota.headers())

    return Depends(admit)


@router.post(
    "/shorten",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short URL",
    responses=error_responses(400, 409),
    dependencies=[rate_limited("create")],
)
async def create_short_url(
    body: TargetRequest,
    service: URLRecordService = Depends(get_url_service),
) -> RecordResponse:
    record = await service.create(body.url)
    return RecordResponse.from_record(record)


@router.get(
    "/shorten/{short_code}",
    response_model=RecordResponse,
    summary="Resolve a short code",
    description="Returns the record and counts one access",
    responses=error_responses(404),
    dependencies=[rate_limited("resolve")],
)
async def resolve_short_url(
    short_code: str,
    service: URLRecordService = Depends(get_url_service),
) -> RecordResponse:
    record = await service.resolve(short_code)
    return RecordResponse.from_record(record)


@router.put(
    "/shorten/{short_code}",
    response_model=RecordResponse,
    summary="Change the target of a short code",
    responses=error_responses(400, 404),
    dependencies=[rate_limited("update")],
)
async def update_short_url(
    short_code: str,
    body: TargetRequest,
    service: URLRecordService = Depends(get_url_service),
) -> RecordResponse:
    record = await service.update(short_code, body.url)
    return RecordResponse.from_record(record)


@router.delete(
    "/shorten/{short_code}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a short code",
    responses=error_responses(404),
    dependencies=[rate_limited("delete")],
)
async def delete_short_url(
    short_code: str,
    service: URLRecordService = Depends(get_url_service),
) -> Response:
    await service.delete(short_code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/shorten/{short_code}/stats",
    response_model=RecordResponse,
    summary="Get URL statistics",
    description="Returns the record, including its access count, without counting an access",
    responses=error_responses(404),
    dependencies=[rate_limited("stats")],
)
async def get_url_stats(
    short_code: str,
    service: URLRecordService = Depends(get_url_service),
) -> RecordResponse:
    record = await service.stats(short_code)
    return RecordResponse.from_record(record)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Redirect to original URL",
    responses=error_responses(404),
    dependencies=[rate_limited("resolve")],
)
async def redirect_to_url(
    short_code: str,
    service: URLRecordService = Depends(get_url_service),
) -> RedirectResponse:
    record = await service.resolve(short_code)
    return RedirectResponse(url=record.target_url, status_code=status.HTTP_302_FOUND)
