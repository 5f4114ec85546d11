"""Engine profile routes"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from fetchforge.services import TaskManager
from .deps import get_manager
from .schemas import ProfileSelection

router = APIRouter()


@router.get("/profiles", response_class=JSONResponse)
async def list_profiles(manager: TaskManager = Depends(get_manager)):
    return {"status": "success", "data": [profile.model_dump() for profile in manager.list_profiles()]}


@router.get("/profiles/active", response_class=JSONResponse)
async def get_active_profile(manager: TaskManager = Depends(get_manager)):
    return {"status": "success", "data": manager.get_active_profile().model_dump()}


@router.put("/profiles/active", response_class=JSONResponse)
async def set_active_profile(selection: ProfileSelection, manager: TaskManager = Depends(get_manager)):
    """
    Select the profile whose arguments are added to every download.
    """
    profile = manager.set_active_profile(selection.id)
    return {"status": "success", "data": profile.model_dump()}
