from fastapi import APIRouter, Depends, Query

from subplanner.dependencies import get_template_catalog
from subplanner.schemas.template import Template
from subplanner.services.templates import TemplateCatalog

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[Template])
async def list_templates(
    refresh: bool = Query(default=False, description="Reload from the template sources"),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    """List presets for quickly adding a known service. Empty when no source is reachable."""
    if refresh:
        return catalog.refresh()
    return catalog.load()
