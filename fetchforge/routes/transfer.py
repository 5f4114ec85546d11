"""Import / export routes"""
import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from fetchforge.services import TaskManager
from .deps import get_manager
from .schemas import ImportRequest

router = APIRouter()
_logger = logging.getLogger("fetchforge")


@router.get("/export")
async def export_tasks_text(manager: TaskManager = Depends(get_manager)):
    """
    Return the ordered task snapshot as JSON text.
    """
    return Response(content=manager.export_text(), media_type="application/json")


@router.post("/export", response_class=JSONResponse)
async def export_tasks_file(manager: TaskManager = Depends(get_manager)):
    """
    Write the task snapshot to the export directory and return the file path.
    """
    path = await run_in_threadpool(manager.export_tasks)
    return {"status": "success", "data": {"path": str(path)}}


@router.post("/import", response_class=JSONResponse)
async def import_tasks(request: ImportRequest, manager: TaskManager = Depends(get_manager)):
    """
    Merge or replace tasks from an exported collection.
    """
    tasks = await run_in_threadpool(
        manager.import_tasks,
        request.payload,
        request.mode,
        request.overwrite_downloaded,
    )
    return {"status": "success", "data": [task.to_record() for task in tasks]}
