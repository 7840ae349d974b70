"""
HTTP routes: the board page plus the JSON API it calls.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from sheetboard.board_config import ConfigService
from sheetboard.dependencies import (
    get_config_service,
    get_generator,
    get_post_service,
    get_uploader,
)
from sheetboard.gemini import GeminiTextGenerator
from sheetboard.posts import PostService
from sheetboard.schemas import (
    CreatePostRequest,
    DeletePostRequest,
    DisplaySettingsResponse,
    GenerateTextRequest,
    GenerateTextResponse,
    ListPostsResponse,
    Pagination,
    PostMutationResponse,
    PostOut,
    UpdatePageSizeRequest,
    UpdatePageSizeResponse,
    UpdatePostRequest,
    UploadFileRequest,
    UploadFileResponse,
    UploadImageRequest,
    UploadImageResponse,
    VerifyPasswordRequest,
    VerifyPasswordResponse,
)
from sheetboard.uploads import BlobUploader, format_drive_url

logger = logging.getLogger(__name__)

router = APIRouter()
page_router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


@page_router.get("/", response_class=HTMLResponse)
def index(request: Request):
    settings = request.app.state.settings
    return templates.TemplateResponse(
        request,
        "index.html",
        {"title": settings.page_title, "api_prefix": settings.api_prefix},
    )


@router.get("/posts", response_model=ListPostsResponse)
def list_posts(
    page: int = Query(1),
    page_size: int | None = Query(None, ge=1, le=100),
    posts: PostService = Depends(get_post_service),
):
    result = posts.list_posts(page=page, page_size=page_size)
    return ListPostsResponse(
        posts=[PostOut(**post.as_dict()) for post in result.posts],
        pagination=Pagination(
            current_page=result.current_page,
            total_pages=result.total_pages,
            total_posts=result.total_posts,
        ),
    )


@router.post("/posts", response_model=PostMutationResponse, status_code=201)
def create_post(
    payload: CreatePostRequest, posts: PostService = Depends(get_post_service)
):
    post = posts.create_post(payload.name, payload.text, payload.password)
    return PostMutationResponse(
        message="Post saved", post=PostOut(**post.as_dict())
    )


@router.put("/posts/{post_id}", response_model=PostMutationResponse)
def update_post(
    post_id: int,
    payload: UpdatePostRequest,
    posts: PostService = Depends(get_post_service),
):
    post = posts.update_post(post_id, payload.name, payload.text, payload.password)
    return PostMutationResponse(
        message="Post updated", post=PostOut(**post.as_dict())
    )


@router.post("/posts/{post_id}/delete", response_model=PostMutationResponse)
def delete_post(
    post_id: int,
    payload: DeletePostRequest,
    posts: PostService = Depends(get_post_service),
):
    posts.delete_post(post_id, payload.password)
    return PostMutationResponse(message="Post hidden")


@router.post("/verify-password", response_model=VerifyPasswordResponse)
def verify_password(
    payload: VerifyPasswordRequest,
    config: ConfigService = Depends(get_config_service),
):
    return VerifyPasswordResponse(valid=config.verify_password(payload.password))


@router.get("/settings/display", response_model=DisplaySettingsResponse)
def display_settings(config: ConfigService = Depends(get_config_service)):
    return DisplaySettingsResponse(posts_per_page=config.page_size)


@router.put("/settings/page-size", response_model=UpdatePageSizeResponse)
def update_page_size(
    payload: UpdatePageSizeRequest,
    config: ConfigService = Depends(get_config_service),
):
    return UpdatePageSizeResponse(
        posts_per_page=config.set_page_size(payload.page_size)
    )


@router.post("/uploads/image", response_model=UploadImageResponse)
def upload_image(
    payload: UploadImageRequest, uploader: BlobUploader = Depends(get_uploader)
):
    url = uploader.upload_image(payload.data_url)
    return UploadImageResponse(image_url=format_drive_url(url))


@router.post("/uploads/file", response_model=UploadFileResponse)
def upload_file(
    payload: UploadFileRequest, uploader: BlobUploader = Depends(get_uploader)
):
    url, file_name = uploader.upload_file(payload.file_name, payload.data_url)
    return UploadFileResponse(file_url=url, file_name=file_name)


@router.post("/generate", response_model=GenerateTextResponse)
def generate_text(
    payload: GenerateTextRequest,
    generator: GeminiTextGenerator = Depends(get_generator),
):
    return GenerateTextResponse(text=generator.generate(payload.text))
