"""
GET /installations
PUT /installations
Read and replace the configured MSTest installations. PUT replaces the whole
list in one step and persists it before responding.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from mstest_runner.api.dependencies import get_registry
from mstest_runner.core.exceptions import RegistryError
from mstest_runner.models.tool_installation import ToolInstallation
from mstest_runner.tools.registry import InstallationRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/installations", response_model=List[ToolInstallation])
def list_installations(registry: InstallationRegistry = Depends(get_registry)):
    return list(registry.get_installations())


@router.put("/installations", response_model=List[ToolInstallation])
def replace_installations(installations: List[ToolInstallation],
                          registry: InstallationRegistry = Depends(get_registry)):
    names = [i.name for i in installations]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise HTTPException(status_code=422, detail=f"Duplicate installation names: {', '.join(duplicates)}")
    try:
        registry.set_installations(installations)
    except RegistryError as e:
        logger.error("Failed to save installations: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return list(registry.get_installations())
