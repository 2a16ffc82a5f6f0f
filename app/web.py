from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from app.api import get_services
from models.entities import ENTITIES, EntityDefinition
from services.errors import NotFound, ValidationError
from services.resources import ResourceService, ResourceServices


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def _resolve(entity: str, services: ResourceServices) -> tuple[EntityDefinition, ResourceService[Any]]:
    definition = ENTITIES.get(entity)
    if definition is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown entity {entity!r}.",
        )
    return definition, services.by_entity(entity)


def _form_values(
    definition: EntityDefinition,
    form: Mapping[str, Any],
    clear_blank: bool = False,
) -> Dict[str, Optional[str]]:
    """Submitted values for declared fields.

    Blank inputs count as absent, except with ``clear_blank`` where a blank
    nullable field is submitted as None so the stored value is cleared.
    """
    values: Dict[str, Optional[str]] = {}
    for spec in definition.fields:
        raw = form.get(spec.name)
        if raw is None:
            continue
        text = str(raw).strip()
        if text:
            values[spec.name] = text
        elif clear_blank and spec.accepts_null:
            values[spec.name] = None
    return values


def _render_form(
    request: Request,
    definition: EntityDefinition,
    values: Mapping[str, Any],
    document_id: Optional[str] = None,
    errors: Optional[Mapping[str, str]] = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "admin/form.html",
        {
            "definition": definition,
            "values": values,
            "document_id": document_id,
            "errors": dict(errors or {}),
        },
        status_code=status_code,
    )


router = APIRouter(prefix="/admin", include_in_schema=False)


@router.get("", name="admin_index", response_class=HTMLResponse)
async def admin_index(
    request: Request,
    services: ResourceServices = Depends(get_services),
) -> HTMLResponse:
    entities = [
        (definition, services.by_entity(name).count()) for name, definition in ENTITIES.items()
    ]
    return templates.TemplateResponse(request, "admin/index.html", {"entities": entities})


@router.get("/{entity}", name="admin_list", response_class=HTMLResponse)
async def admin_list(
    request: Request,
    entity: str,
    services: ResourceServices = Depends(get_services),
) -> HTMLResponse:
    definition, service = _resolve(entity, services)
    documents = [document.model_dump(by_alias=True) for document in service.list()]
    return templates.TemplateResponse(
        request,
        "admin/list.html",
        {"definition": definition, "documents": documents},
    )


@router.get("/{entity}/new", name="admin_new", response_class=HTMLResponse)
async def admin_new(
    request: Request,
    entity: str,
    services: ResourceServices = Depends(get_services),
) -> HTMLResponse:
    definition, _service = _resolve(entity, services)
    return _render_form(request, definition, values={})


@router.post("/{entity}/new", name="admin_create", response_class=HTMLResponse)
async def admin_create(
    request: Request,
    entity: str,
    services: ResourceServices = Depends(get_services),
):
    definition, service = _resolve(entity, services)
    values = _form_values(definition, await request.form())
    try:
        document = service.create(values)
    except ValidationError as exc:
        errors = {error.field: error.message for error in exc.errors}
        return _render_form(
            request, definition, values, errors=errors, status_code=status.HTTP_400_BAD_REQUEST
        )
    return RedirectResponse(
        url=request.url_for("admin_detail", entity=entity, document_id=document.id),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/{entity}/{document_id}", name="admin_detail", response_class=HTMLResponse)
async def admin_detail(
    request: Request,
    entity: str,
    document_id: str,
    services: ResourceServices = Depends(get_services),
) -> HTMLResponse:
    definition, service = _resolve(entity, services)
    try:
        document = service.get_by_id(document_id)
    except NotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.message,
        ) from exc
    return templates.TemplateResponse(
        request,
        "admin/detail.html",
        {
            "definition": definition,
            "document": document.model_dump(by_alias=True),
            "values": document.model_dump(by_alias=True),
            "document_id": document_id,
            "errors": {},
        },
    )


@router.post("/{entity}/{document_id}", name="admin_update", response_class=HTMLResponse)
async def admin_update(
    request: Request,
    entity: str,
    document_id: str,
    services: ResourceServices = Depends(get_services),
):
    definition, service = _resolve(entity, services)
    values = _form_values(definition, await request.form(), clear_blank=True)
    try:
        service.update_by_id(document_id, values)
    except NotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.message,
        ) from exc
    except ValidationError as exc:
        errors = {error.field: error.message for error in exc.errors}
        return _render_form(
            request,
            definition,
            values,
            document_id=document_id,
            errors=errors,
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return RedirectResponse(
        url=request.url_for("admin_detail", entity=entity, document_id=document_id),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post("/{entity}/{document_id}/delete", name="admin_delete")
async def admin_delete(
    request: Request,
    entity: str,
    document_id: str,
    services: ResourceServices = Depends(get_services),
) -> RedirectResponse:
    _definition, service = _resolve(entity, services)
    try:
        service.delete_by_id(document_id)
    except NotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.message,
        ) from exc
    return RedirectResponse(
        url=request.url_for("admin_list", entity=entity),
        status_code=status.HTTP_303_SEE_OTHER,
    )
