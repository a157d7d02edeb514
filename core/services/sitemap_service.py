# =============================================================================
# core/services/sitemap_service.py - sitemap.xml & robots.txt
# =============================================================================
# Public pages, active products and categories, published blog posts and
# active blog categories, as absolute URLs under APP_URL.
# =============================================================================

from datetime import date
from typing import Any
from xml.etree import ElementTree

from lib.database import Connection

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

# (path, changefreq, priority)
STATIC_PAGES = [
    ("/", "daily", "1.0"),
    ("/products", "daily", "0.9"),
    ("/blog", "weekly", "0.8"),
    ("/wholesale", "monthly", "0.7"),
    ("/about", "monthly", "0.6"),
    ("/contact", "monthly", "0.6"),
    ("/certificates", "monthly", "0.5"),
    ("/gallery", "weekly", "0.5"),
]

DISALLOWED_PATHS = ["/admin/", "/api/", "/cart", "/checkout", "/login", "/register"]


def _day(value: Any) -> str:
    return str(value)[:10] if value else date.today().isoformat()


class SitemapService:
    """
    Builds the sitemap and robots.txt for a site URL.

    Example:
        SitemapService(conn, "https://ceyloncinnamon.lk").to_xml()
    """

    def __init__(self, conn: Connection, site_url: str):
        self.conn = conn
        self.site_url = site_url.rstrip("/")

    def _entry(self, path: str, lastmod: Any, changefreq: str, priority: str) -> dict[str, str]:
        return {
            "loc": self.site_url + path,
            "lastmod": _day(lastmod),
            "changefreq": changefreq,
            "priority": priority,
        }

    def entries(self) -> list[dict[str, str]]:
        urls = [self._entry(path, None, freq, priority) for path, freq, priority in STATIC_PAGES]

        for row in self.conn.fetch_all(
            "SELECT slug, COALESCE(updated_at, created_at) AS modified FROM products "
            "WHERE is_active = 1 ORDER BY modified DESC"
        ):
            urls.append(self._entry(f"/products/{row['slug']}", row["modified"], "weekly", "0.8"))

        for row in self.conn.fetch_all("SELECT slug FROM categories WHERE is_active = 1 ORDER BY name ASC"):
            urls.append(self._entry(f"/category/{row['slug']}", None, "weekly", "0.7"))

        for row in self.conn.fetch_all(
            "SELECT slug, COALESCE(updated_at, created_at) AS modified FROM blog_posts "
            "WHERE status = 'published' ORDER BY modified DESC"
        ):
            urls.append(self._entry(f"/blog/{row['slug']}", row["modified"], "monthly", "0.6"))

        for row in self.conn.fetch_all("SELECT slug FROM blog_categories WHERE is_active = 1 ORDER BY name ASC"):
            urls.append(self._entry(f"/blog/category/{row['slug']}", None, "weekly", "0.5"))

        return urls

    def to_xml(self) -> str:
        urlset = ElementTree.Element("urlset", xmlns=SITEMAP_NS)
        for entry in self.entries():
            url = ElementTree.SubElement(urlset, "url")
            for key in ("loc", "lastmod", "changefreq", "priority"):
                ElementTree.SubElement(url, key).text = entry[key]
        body = ElementTree.tostring(urlset, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'

    def robots_txt(self) -> str:
        lines = ["User-agent: *", "Allow: /"]
        lines += [f"Disallow: {path}" for path in DISALLOWED_PATHS]
        lines += ["", f"Sitemap: {self.site_url}/sitemap.xml", ""]
        return "\n".join(lines)
