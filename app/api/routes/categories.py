from fastapi import APIRouter, Depends, HTTPException
from typing import List

from app.api.deps import get_library, get_storage
from app.schemas.category import Category, CategoryCreate
from app.services.library import LibraryService
from app.storage.base import LibraryStorage

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[Category])
def list_categories(storage: LibraryStorage = Depends(get_storage)):
    return storage.get_all_categories()


@router.get("/{category_id}", response_model=Category)
def get_category(category_id: int, storage: LibraryStorage = Depends(get_storage)):
    category = storage.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("", response_model=Category, status_code=201)
def create_category(payload: CategoryCreate, library: LibraryService = Depends(get_library)):
    """
    Create a category. Names are unique regardless of case, so "academic"
    is rejected while "Academic" exists.
    """
    return library.create_category(payload.name)
