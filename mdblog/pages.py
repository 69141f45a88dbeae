from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .content import CalendarDate, FrontMatter
from .render import escape_html, escape_xml, render_template
from .utils import join_url

POST_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{title}} | {{site_title}}</title>
{{meta_description}}</head>
<body>
<p><a href="index.html">Back</a></p>
<main>
<article>
<h1>{{title}}</h1>
<p class="post-meta"><time datetime="{{date}}">{{date}}</time></p>
{{tags}}<div class="post-body">
{{content}}
</div>
</article>
</main>
</body>
</html>
"""

INDEX_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{site_title}}</title>
<link rel="alternate" type="application/rss+xml" title="{{site_title}}" href="feed.xml">
</head>
<body>
<header>
<h1>{{site_title}}</h1>
{{site_description}}</header>
<main>
<ul class="post-list">
{{content}}</ul>
</main>
</body>
</html>
"""


@dataclass(frozen=True)
class PostSummary:
    title: str
    date: CalendarDate
    date_raw: str
    slug: str
    description: Optional[str] = None

    @classmethod
    def from_front_matter(cls, front_matter: FrontMatter, slug: str) -> "PostSummary":
        return cls(
            title=front_matter.title,
            date=front_matter.date,
            date_raw=front_matter.date_raw,
            slug=slug,
            description=front_matter.description,
        )


def sort_summaries(posts: list[PostSummary]) -> list[PostSummary]:
    """Newest first; posts sharing a date are ordered by slug."""
    by_slug = sorted(posts, key=lambda p: p.slug.encode("utf-8"))
    return sorted(by_slug, key=lambda p: p.date, reverse=True)


def render_post_page(front_matter: FrontMatter, body_html: str, site_title: str) -> str:
    meta_description = ""
    if front_matter.description:
        meta_description = f'<meta name="description" content="{escape_html(front_matter.description)}">\n'
    tags_html = ""
    if front_matter.tags:
        chips = "".join(f'<li class="chip">{escape_html(tag)}</li>' for tag in front_matter.tags)
        tags_html = f'<ul class="post-tags">{chips}</ul>\n'
    html_doc = render_template(
        POST_TEMPLATE,
        title=escape_html(front_matter.title),
        site_title=escape_html(site_title),
        date=escape_html(front_matter.date_raw),
        meta_description=meta_description,
        tags=tags_html,
        content=body_html,
    )
    return html_doc


def render_index_page(posts: list[PostSummary], site_title: str, site_description: str) -> str:
    rows = []
    for post in posts:
        row = (
            f'<li><time datetime="{escape_html(post.date_raw)}">{escape_html(post.date_raw)}</time> '
            f'<a href="{escape_html(post.slug)}.html">{escape_html(post.title)}</a>'
        )
        if post.description:
            row += f'<p class="post-summary">{escape_html(post.description)}</p>'
        rows.append(row + "</li>\n")
    description_html = f"<p>{escape_html(site_description)}</p>\n" if site_description else ""
    html_doc = render_template(
        INDEX_TEMPLATE,
        site_title=escape_html(site_title),
        site_description=description_html,
        content="".join(rows),
    )
    return html_doc


def render_feed(posts: list[PostSummary], base_url: str, site_title: str, site_description: str) -> str:
    """RSS 2.0 document for ``posts``, which must already be sorted newest first."""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0">',
        "<channel>",
        f"<title>{escape_xml(site_title)}</title>",
        f"<link>{escape_xml(base_url)}</link>",
        f"<description>{escape_xml(site_description)}</description>",
    ]
    if posts:
        lines.append(f"<lastBuildDate>{posts[0].date.rfc822()}</lastBuildDate>")
    for post in posts:
        link = escape_xml(join_url(base_url, f"{post.slug}.html"))
        lines.append("<item>")
        lines.append(f"<title>{escape_xml(post.title)}</title>")
        lines.append(f"<link>{link}</link>")
        lines.append(f'<guid isPermaLink="true">{link}</guid>')
        lines.append(f"<pubDate>{post.date.rfc822()}</pubDate>")
        if post.description:
            lines.append(f"<description>{escape_xml(post.description)}</description>")
        lines.append("</item>")
    lines.extend(["</channel>", "</rss>", ""])
    return "\n".join(lines)
