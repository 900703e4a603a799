"""Workout templates and categories."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from app.api.deps import get_engine
from app.schemas.template import (
    CategoriesUpdate,
    WorkoutTemplate,
    WorkoutTemplateCreate,
    WorkoutTemplateUpdate,
)
from app.services.session_store import SessionStore
from app.services.template_normalizer import normalize_template

router = APIRouter()


@router.get("", response_model=list[WorkoutTemplate])
async def list_templates(
    category: str | None = None,
    engine: SessionStore = Depends(get_engine),
):
    """List templates, optionally only one category."""
    if category is None:
        return engine.templates
    return [t for t in engine.templates if t.category == category]


@router.post("", response_model=WorkoutTemplate, status_code=201)
async def create_template(
    payload: WorkoutTemplateCreate,
    engine: SessionStore = Depends(get_engine),
):
    template, _ = normalize_template(WorkoutTemplate(**payload.model_dump()))
    return engine.save_template(template)


@router.get("/categories", response_model=list[str])
async def list_categories(engine: SessionStore = Depends(get_engine)):
    return engine.categories


@router.put("/categories", response_model=list[str])
async def replace_categories(
    payload: CategoriesUpdate,
    engine: SessionStore = Depends(get_engine),
):
    return engine.set_categories(payload.categories)


@router.post("/categories/{name}", response_model=list[str], status_code=201)
async def add_category(name: str, engine: SessionStore = Depends(get_engine)):
    if name.strip() in engine.categories:
        raise HTTPException(status_code=409, detail="Category already exists")
    return engine.set_categories([*engine.categories, name])


@router.delete("/categories/{name}", response_model=list[str])
async def delete_category(name: str, engine: SessionStore = Depends(get_engine)):
    """Remove a category; templates keep their category label."""
    return engine.set_categories([c for c in engine.categories if c != name])


@router.get("/{template_id}", response_model=WorkoutTemplate)
async def get_template(template_id: str, engine: SessionStore = Depends(get_engine)):
    return engine.get_template(template_id)


@router.patch("/{template_id}", response_model=WorkoutTemplate)
async def update_template(
    template_id: str,
    payload: WorkoutTemplateUpdate,
    engine: SessionStore = Depends(get_engine),
):
    """Partial update; exercises, when given, replace the whole list."""
    template = engine.get_template(template_id)
    data = {**template.model_dump(), **payload.model_dump(exclude_unset=True)}
    updated, _ = normalize_template(WorkoutTemplate.model_validate(data))
    return engine.save_template(updated)


@router.delete("/{template_id}", status_code=204)
async def delete_template(template_id: str, engine: SessionStore = Depends(get_engine)):
    engine.delete_template(template_id)
    return Response(status_code=204)
