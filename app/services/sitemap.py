from jinja2 import Template
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.entities import Post, PostStatus

STATIC_PAGES = [
    ("", "daily", "1.0"),
    ("/browse", "daily", "0.9"),
    ("/genres", "weekly", "0.8"),
    ("/gallery", "weekly", "0.7"),
    ("/stats", "weekly", "0.5"),
    ("/contact", "monthly", "0.5"),
]

SITEMAP_TEMPLATE = """
<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
{% for path, changefreq, priority in static_pages %}
  <url>
    <loc>{{ base_url }}{{ path }}</loc>
    <changefreq>{{ changefreq }}</changefreq>
    <priority>{{ priority }}</priority>
  </url>
{% endfor %}
{% for post in posts %}
  <url>
    <loc>{{ base_url }}/reviews/{{ post.slug }}</loc>
    <lastmod>{{ (post.updated_at or post.created_at).date().isoformat() }}</lastmod>
    <changefreq>weekly</changefreq>
    <priority>0.8</priority>
  </url>
{% endfor %}
</urlset>
""".strip()


def build_sitemap(db: Session) -> str:
    settings = get_settings()
    posts = (
        db.query(Post)
        .filter(Post.status == PostStatus.published)
        .order_by(Post.updated_at.desc(), Post.id.desc())
        .all()
    )
    return Template(SITEMAP_TEMPLATE, autoescape=True).render(
        base_url=settings.site_url.rstrip("/"),
        static_pages=STATIC_PAGES,
        posts=posts,
    )
