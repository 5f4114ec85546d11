"""Task routes"""
import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from fetchforge.services import TaskManager
from .deps import get_manager
from .schemas import OpenPathRequest, SubmitRequest

router = APIRouter()
_logger = logging.getLogger("fetchforge")


@router.post("/tasks", response_class=JSONResponse)
async def submit_tasks(request: SubmitRequest, manager: TaskManager = Depends(get_manager)):
    """
    Extract http(s) locators from free text and queue one task per distinct locator.
    """
    created = await run_in_threadpool(manager.submit, request.text)
    _logger.info("Submitted tasks count=%d", len(created))
    return {"status": "success", "data": [task.to_record() for task in created]}


@router.get("/tasks", response_class=JSONResponse)
async def list_tasks(manager: TaskManager = Depends(get_manager)):
    """
    List all tasks in creation order.
    """
    return {"status": "success", "data": [task.to_record() for task in manager.list_tasks()]}


@router.get("/tasks/{task_id}", response_class=JSONResponse)
async def get_task(task_id: str, manager: TaskManager = Depends(get_manager)):
    return {"status": "success", "data": manager.get_task(task_id).to_record()}


@router.delete("/tasks/{task_id}", response_class=JSONResponse)
async def delete_task(task_id: str, manager: TaskManager = Depends(get_manager)):
    """
    Delete a task, moving its downloaded file to the trash first.
    """
    await run_in_threadpool(manager.delete_task, task_id)
    return {"status": "success", "message": f"Task {task_id} deleted successfully"}


@router.post("/tasks/{task_id}/open-folder", response_class=JSONResponse)
async def open_task_folder(task_id: str, manager: TaskManager = Depends(get_manager)):
    folder = await run_in_threadpool(manager.open_task_folder, task_id)
    return {"status": "success", "data": {"path": str(folder)}}


@router.post("/tasks/{task_id}/open-file", response_class=JSONResponse)
async def open_task_file(task_id: str, manager: TaskManager = Depends(get_manager)):
    path = await run_in_threadpool(manager.open_task_file, task_id)
    return {"status": "success", "data": {"path": str(path)}}


@router.get("/tasks/{task_id}/file-status", response_class=JSONResponse)
async def task_file_status(task_id: str, manager: TaskManager = Depends(get_manager)):
    """
    Report whether the output file is ready: ok, pending or missing.
    """
    return {"status": "success", "data": manager.file_status(task_id).value}


@router.get("/tasks/{task_id}/resume-status", response_class=JSONResponse)
async def task_resume_status(task_id: str, manager: TaskManager = Depends(get_manager)):
    """
    Report whether partial output is available to resume: ready or none.
    """
    status = await run_in_threadpool(manager.resume_status, task_id)
    return {"status": "success", "data": status.value}


@router.post("/tasks/{task_id}/resume", response_class=JSONResponse)
async def resume_task(task_id: str, manager: TaskManager = Depends(get_manager)):
    task = await run_in_threadpool(manager.resume, task_id)
    return {"status": "success", "data": task.to_record()}


@router.post("/tasks/{task_id}/force-resume", response_class=JSONResponse)
async def force_resume_task(task_id: str, manager: TaskManager = Depends(get_manager)):
    """
    Requeue a task even if it still appears to be running.
    """
    task = await run_in_threadpool(manager.force_resume, task_id)
    return {"status": "success", "data": task.to_record()}


@router.post("/open-path", response_class=JSONResponse)
async def open_path(request: OpenPathRequest, manager: TaskManager = Depends(get_manager)):
    target = await run_in_threadpool(manager.open_path, request.path)
    return {"status": "success", "data": {"path": str(target)}}
