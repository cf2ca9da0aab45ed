from fastapi import Request

from app.services.library import LibraryService
from app.storage.base import LibraryStorage


def get_storage(request: Request) -> LibraryStorage:
    return request.app.state.storage


def get_library(request: Request) -> LibraryService:
    return request.app.state.library
