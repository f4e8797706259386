from typing import Optional, List
from pydantic import BaseModel

class UploadedPhoto(BaseModel):
    """Descriptor returned once a photo is stored and public."""
    id: str
    name: str
    url: str
    thumbnail: str

class UploadResponse(BaseModel):
    success: bool = True
    photo: UploadedPhoto

class UploadResult(BaseModel):
    originalName: str
    success: bool
    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    error: Optional[str] = None

class BulkUploadResponse(BaseModel):
    success: bool = True
    total: int
    uploaded: int
    failed: int
    results: List[UploadResult]

class PhotoOut(BaseModel):
    id: str
    name: str
    uploadedBy: str
    createdAt: str
    thumbnail: str
    fullSize: str

class ListResponse(BaseModel):
    photos: List[PhotoOut]
    nextPageToken: Optional[str] = None
    hasMore: bool

class ErrorResponse(BaseModel):
    error: str
