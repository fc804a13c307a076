"""Authenticated passthrough of news operations to the external backend."""
import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from errors import Unauthenticated, error_response
from laravel_client import LaravelClient, UpstreamError, get_laravel_client

logger = logging.getLogger(__name__)

router = APIRouter()


def bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise Unauthenticated("Authentication required - no bearer token")
    return auth_header[7:]


async def read_form(request: Request, spoof_method: Optional[str] = None):
    """Split a multipart body into plain fields and files for re-sending."""
    form = await request.form()
    data: List[Tuple[str, str]] = []
    files: List[Tuple[str, Tuple]] = []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            content = await value.read()
            files.append((key, (value.filename, content, value.content_type)))
        else:
            data.append((key, value))
    if spoof_method:
        data.append(("_method", spoof_method))
    return data, files


def is_multipart(request: Request) -> bool:
    return "multipart/form-data" in request.headers.get("content-type", "")


async def relay(client: LaravelClient, method: str, path: str, token: str, failure: str, **kwargs) -> Response:
    try:
        upstream = await run_in_threadpool(client.forward, method, path, token, **kwargs)
    except UpstreamError as e:
        logger.error(f"News proxy {method} {path} failed: {e}")
        return error_response(500, failure)
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("Content-Type", "application/json"),
    )


@router.get("/news")
async def list_news(request: Request, client: LaravelClient = Depends(get_laravel_client)):
    token = bearer_token(request)
    return await relay(
        client, "GET", "news", token, "Failed to fetch news articles",
        params=list(request.query_params.multi_items()),
    )


@router.post("/news")
async def create_news(request: Request, client: LaravelClient = Depends(get_laravel_client)):
    token = bearer_token(request)
    if is_multipart(request):
        data, files = await read_form(request)
        return await relay(client, "POST", "news", token, "Internal server error", data=data, files=files)
    return await relay(client, "POST", "news", token, "Internal server error", json=await request.json())


@router.get("/news/{news_id}")
async def get_news(news_id: str, request: Request, client: LaravelClient = Depends(get_laravel_client)):
    token = bearer_token(request)
    return await relay(
        client, "GET", f"news/{news_id}", token, "Failed to fetch news article",
        params=list(request.query_params.multi_items()),
    )


@router.post("/news/{news_id}")
async def update_news_form(news_id: str, request: Request, client: LaravelClient = Depends(get_laravel_client)):
    """Multipart update, sent upstream as POST with _method=PUT"""
    token = bearer_token(request)
    data, files = await read_form(request, spoof_method="PUT")
    return await relay(client, "POST", f"news/{news_id}", token, "Internal server error", data=data, files=files)


@router.put("/news/{news_id}")
async def update_news(news_id: str, request: Request, client: LaravelClient = Depends(get_laravel_client)):
    token = bearer_token(request)
    if is_multipart(request):
        # File uploads only survive as POST upstream
        data, files = await read_form(request, spoof_method="PUT")
        return await relay(client, "POST", f"news/{news_id}", token, "Internal server error", data=data, files=files)
    return await relay(client, "PUT", f"news/{news_id}", token, "Internal server error", json=await request.json())


@router.delete("/news/{news_id}")
async def delete_news(news_id: str, request: Request, client: LaravelClient = Depends(get_laravel_client)):
    token = bearer_token(request)
    return await relay(client, "DELETE", f"news/{news_id}", token, "Internal server error")


@router.patch("/news/{news_id}/reactivate")
async def reactivate_news(news_id: str, request: Request, client: LaravelClient = Depends(get_laravel_client)):
    token = bearer_token(request)
    return await relay(client, "PATCH", f"news/{news_id}/reactivate", token, "Internal server error")
