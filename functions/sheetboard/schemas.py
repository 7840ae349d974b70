"""
Pydantic schemas for the bulletin-board API.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field


class PostOut(BaseModel):
    id: int
    name: str
    text: str
    created_at: str
    updated_at: str


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_posts: int


class ListPostsResponse(BaseModel):
    posts: list[PostOut]
    pagination: Pagination


class CreatePostRequest(BaseModel):
    name: str = Field(..., max_length=200)
    text: str = Field(..., max_length=50000)
    password: str


class UpdatePostRequest(CreatePostRequest):
    pass


class DeletePostRequest(BaseModel):
    password: str


class PostMutationResponse(BaseModel):
    success: Literal[True] = True
    message: str
    post: PostOut | None = None


class VerifyPasswordRequest(BaseModel):
    password: str


class VerifyPasswordResponse(BaseModel):
    valid: bool


class DisplaySettingsResponse(BaseModel):
    posts_per_page: int


class UpdatePageSizeRequest(BaseModel):
    page_size: Union[int, str]


class UpdatePageSizeResponse(BaseModel):
    success: Literal[True] = True
    posts_per_page: int


class UploadImageRequest(BaseModel):
    data_url: str


class UploadImageResponse(BaseModel):
    success: Literal[True] = True
    image_url: str


class UploadFileRequest(BaseModel):
    file_name: str = Field(..., max_length=255)
    data_url: str


class UploadFileResponse(BaseModel):
    success: Literal[True] = True
    file_url: str
    file_name: str


class GenerateTextRequest(BaseModel):
    text: str = Field(..., max_length=20000)


class GenerateTextResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str
    code: str
