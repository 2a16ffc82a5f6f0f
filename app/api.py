"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, List, Type

from fastapi import APIRouter, Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.schemas import (
    FieldErrorModel,
    HealthResponse,
    MessageResponse,
    ValidationErrorResponse,
)
from logging_config import request_context
from models.entities import MACHINE, SENSOR, SENSOR_DATA, Document, EntityDefinition
from services.errors import NotFound, ResourceError, ValidationError
from services.resources import ResourceService, ResourceServices, SensorService

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ValidationErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": MessageResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": MessageResponse},
}


def get_services(request: Request) -> ResourceServices:
    return request.app.state.services


def get_sensor_service(services: ResourceServices = Depends(get_services)) -> SensorService:
    return services.sensor


def build_resource_router(definition: EntityDefinition) -> APIRouter:
    """CRUD routes for one entity, mounted under ``/<entity name>``."""

    model: Type[Document] = definition.document_model
    router = APIRouter(prefix=f"/{definition.name}", tags=[definition.label])

    def get_service(services: ResourceServices = Depends(get_services)) -> ResourceService[Any]:
        return services.by_entity(definition.name)

    @router.post(
        "",
        status_code=status.HTTP_201_CREATED,
        response_model=model,
        responses=_ERROR_RESPONSES,
        summary=f"Create a {definition.label.lower()} entry.",
    )
    async def create_document(
        payload: Any = Body(...),
        service: ResourceService[Any] = Depends(get_service),
    ) -> Document:
        return service.create(payload)

    @router.get(
        "",
        response_model=List[model],  # type: ignore[valid-type]
        responses=_ERROR_RESPONSES,
        summary=f"List every {definition.label.lower()} entry.",
    )
    async def list_documents(
        service: ResourceService[Any] = Depends(get_service),
    ) -> List[Document]:
        return service.list()

    @router.get(
        "/{document_id}",
        response_model=model,
        responses=_ERROR_RESPONSES,
        summary=f"Fetch a {definition.label.lower()} entry by id.",
    )
    async def get_document(
        document_id: str,
        service: ResourceService[Any] = Depends(get_service),
    ) -> Document:
        return service.get_by_id(document_id)

    @router.patch(
        "/{document_id}",
        response_model=model,
        responses=_ERROR_RESPONSES,
        summary=f"Partially update a {definition.label.lower()} entry.",
    )
    async def update_document(
        document_id: str,
        payload: Any = Body(...),
        service: ResourceService[Any] = Depends(get_service),
    ) -> Document:
        return service.update_by_id(document_id, payload)

    @router.delete(
        "/{document_id}",
        response_model=MessageResponse,
        responses=_ERROR_RESPONSES,
        summary=f"Delete a {definition.label.lower()} entry.",
    )
    async def delete_document(
        document_id: str,
        service: ResourceService[Any] = Depends(get_service),
    ) -> MessageResponse:
        return MessageResponse(message=service.delete_by_id(document_id))

    return router


machine_router = build_resource_router(MACHINE)
sensor_router = build_resource_router(SENSOR)
sensor_data_router = build_resource_router(SENSOR_DATA)


@sensor_router.get(
    "/{machine_id}/sensor",
    response_model=List[SENSOR.document_model],  # type: ignore[name-defined]
    responses=_ERROR_RESPONSES,
    summary="List the sensors attached to a machine.",
)
async def list_machine_sensors(
    machine_id: str,
    service: SensorService = Depends(get_sensor_service),
) -> List[Document]:
    return service.list_by_machine(machine_id)


router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/",
    response_model=MessageResponse,
    summary="Root endpoint with a greeting.",
    status_code=status.HTTP_200_OK,
)
async def root() -> MessageResponse:
    return MessageResponse(message="Hello, World!")


router.include_router(machine_router)
router.include_router(sensor_router)
router.include_router(sensor_data_router)


def _status_for(exc: ResourceError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    # ReadError, WriteError and anything unclassified.
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _log_failure(request: Request, status_code: int, message: str, **extra: Any) -> None:
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    logger.log(level, message, extra=request_context(request, status=status_code, **extra))


async def resource_error_handler(request: Request, exc: ResourceError) -> JSONResponse:
    status_code = _status_for(exc)
    if isinstance(exc, ValidationError):
        _log_failure(request, status_code, exc.message, error_count=len(exc.errors))
        body = ValidationErrorResponse(
            errors=[FieldErrorModel.from_error(error) for error in exc.errors]
        )
        return JSONResponse(status_code=status_code, content=body.model_dump())
    _log_failure(request, status_code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=MessageResponse(message=exc.message).model_dump(),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        FieldErrorModel(
            field=".".join(str(part) for part in error.get("loc", ())) or "body",
            message=str(error.get("msg", "Invalid value")),
        )
        for error in exc.errors()
    ]
    status_code = status.HTTP_400_BAD_REQUEST
    _log_failure(request, status_code, "Malformed request", error_count=len(errors))
    return JSONResponse(
        status_code=status_code,
        content=ValidationErrorResponse(errors=errors).model_dump(),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    _log_failure(request, exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra=request_context(request, status=status.HTTP_500_INTERNAL_SERVER_ERROR),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=MessageResponse(message="Internal server error").model_dump(),
    )


def install_error_handlers(app: FastAPI) -> None:
    """Convert every failure into a ``message`` or ``errors`` body."""
    app.add_exception_handler(ResourceError, resource_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
