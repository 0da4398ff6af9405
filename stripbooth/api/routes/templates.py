from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from stripbooth.api.dependencies import get_settings, get_template_service
from stripbooth.config import Settings
from stripbooth.models.template import (
    CategoryInfo,
    Template,
    TemplateCategory,
    TemplateCreateRequest,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpdateRequest,
    TemplateUsageResponse,
)
from stripbooth.services.template import TemplateService

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=TemplateListResponse)
async def list_templates(
        category: Optional[TemplateCategory] = None,
        template_service: TemplateService = Depends(get_template_service)
):
    templates = await template_service.list_active(category)
    return TemplateListResponse(templates=templates, categories=list(TemplateCategory))


@router.get("/categories/list", response_model=List[CategoryInfo])
async def list_categories(template_service: TemplateService = Depends(get_template_service)):
    counts = await template_service.categories()
    return [
        CategoryInfo(value=category, label=category.value.capitalize(), count=counts.get(category, 0))
        for category in TemplateCategory
    ]


@router.post("/seed/default", response_model=TemplateResponse, status_code=201)
async def seed_default_template(
        settings: Settings = Depends(get_settings),
        template_service: TemplateService = Depends(get_template_service)
):
    if not settings.debug:
        raise HTTPException(status_code=403, detail="Seeding is only available in debug mode")

    template = await template_service.seed_default()
    return TemplateResponse(message="Default template created", template=template)


@router.get("/{template_id}", response_model=Template)
async def get_template(template_id: str, template_service: TemplateService = Depends(get_template_service)):
    return await template_service.get(template_id)


@router.post("", response_model=TemplateResponse, status_code=201)
async def create_template(
        body: TemplateCreateRequest,
        template_service: TemplateService = Depends(get_template_service)
):
    template = await template_service.create(body)
    return TemplateResponse(message="Template uploaded successfully", template=template)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
        template_id: str,
        body: TemplateUpdateRequest,
        template_service: TemplateService = Depends(get_template_service)
):
    template = await template_service.update(template_id, body)
    return TemplateResponse(message="Template updated successfully", template=template)


@router.post("/{template_id}/use", response_model=TemplateUsageResponse)
async def use_template(template_id: str, template_service: TemplateService = Depends(get_template_service)):
    usage_count = await template_service.record_use(template_id)
    return TemplateUsageResponse(message="Template usage recorded", usage_count=usage_count)
