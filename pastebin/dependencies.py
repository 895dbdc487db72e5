"""
FastAPI dependencies resolving the process-wide handles built in create_app.
"""
from fastapi import Request

from pastebin.config import Settings
from pastebin.service import PasteService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_paste_service(request: Request) -> PasteService:
    return request.app.state.service
