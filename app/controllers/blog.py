# =============================================================================
# app/controllers/blog.py - Blog Pages
# =============================================================================

from starlette.responses import Response

from app import views
from app.controllers.base import pagination
from app.routing import RequestContext
from core.services.blog_service import BlogService

POSTS_PER_PAGE = 9


def index(request: RequestContext) -> Response:
    page, per_page, offset = pagination(request, POSTS_PER_PAGE)
    blog = BlogService(request.db)
    result = blog.get_published(per_page, offset)
    return views.render(request, "blog/index.html", {
        **result,
        "current_page": page,
        "category": None,
        "blog_categories": blog.get_categories(),
    })


def category(request: RequestContext, slug: str) -> Response:
    blog = BlogService(request.db)
    found = blog.find_category_by_slug(slug)
    if found is None:
        return views.error_page(request, 404, "Blog category not found.")

    page, per_page, offset = pagination(request, POSTS_PER_PAGE)
    result = blog.get_published(per_page, offset, category_id=found["id"])
    return views.render(request, "blog/index.html", {
        **result,
        "current_page": page,
        "category": found,
        "blog_categories": blog.get_categories(),
    })


def show(request: RequestContext, slug: str) -> Response:
    blog = BlogService(request.db)
    post = blog.get_published_by_slug(slug)
    if post is None:
        return views.error_page(request, 404, "Post not found.")
    recent = [p for p in blog.get_recent(4) if p["id"] != post["id"]][:3]
    return views.render(request, "blog/show.html", {"post": post, "recent_posts": recent})
