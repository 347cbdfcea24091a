from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from portfolio_site.api.deps import get_blog_repository
from portfolio_site.core.models import BlogPost
from portfolio_site.services.blog import BlogRepository, PostNotFoundError

router = APIRouter(prefix="/blog")


@router.get("", response_model=list[BlogPost])
async def list_posts(repo: BlogRepository = Depends(get_blog_repository)) -> list[BlogPost]:
    return await asyncio.to_thread(repo.get_sorted_posts)


@router.get("/ids", response_model=list[str])
async def list_post_ids(repo: BlogRepository = Depends(get_blog_repository)) -> list[str]:
    return await asyncio.to_thread(repo.get_all_post_ids)


@router.get("/{post_id}", response_model=BlogPost)
async def get_post(post_id: str, repo: BlogRepository = Depends(get_blog_repository)) -> BlogPost:
    try:
        return await asyncio.to_thread(repo.get_post, post_id)
    except PostNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Post not found: {post_id}") from e
