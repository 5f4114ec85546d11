"""Shared route dependencies"""
from fastapi import Request

from fetchforge.services import TaskManager


def get_manager(request: Request) -> TaskManager:
    return request.app.state.manager
