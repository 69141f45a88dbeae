from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .content import parse_document, slugify
from .errors import DuplicateSlugError, FrontMatterError, RenderError
from .pages import PostSummary, render_feed, render_index_page, render_post_page, sort_summaries
from .render import clean_output_dir, copy_static, render_markdown, write_text
from .utils import check_output_containment, validate_rel_path

POST_SUFFIX = ".md"


@dataclass
class GenerateOptions:
    out_dir_path: str = "dist"
    posts_dir_path: str = "posts"
    static_dir_path: str = "static"
    site_title: str = "Blog"
    site_description: str = ""
    base_url: str = "https://example.com"


@dataclass
class BuildResult:
    output_dir: Path
    posts: list[PostSummary] = field(default_factory=list)
    drafts: list[str] = field(default_factory=list)


def list_post_files(posts_dir: Path) -> list[str]:
    """Names of ``*.md`` regular files directly inside ``posts_dir``, byte-sorted."""
    try:
        with os.scandir(posts_dir) as entries:
            names = [
                entry.name
                for entry in entries
                if entry.name.endswith(POST_SUFFIX) and entry.is_file(follow_symlinks=False)
            ]
    except FileNotFoundError:
        return []
    return sorted(names, key=os.fsencode)


def prepare_output_dir(base_dir: Path, options: GenerateOptions) -> Path:
    validate_rel_path(options.out_dir_path, "out_dir")
    validate_rel_path(options.posts_dir_path, "posts_dir")
    validate_rel_path(options.static_dir_path, "static_dir")

    out_dir = Path(options.out_dir_path)
    posts_dir = Path(options.posts_dir_path)
    static_dir = Path(options.static_dir_path)
    out_resolved = check_output_containment(base_dir, out_dir, posts_dir, static_dir)
    out_resolved.mkdir(parents=True, exist_ok=True)
    # The directory now exists; re-check in case a symlink appeared meanwhile.
    return check_output_containment(base_dir, out_dir, posts_dir, static_dir, strict=True)


def render_site(base_dir: Path, options: GenerateOptions) -> tuple[BuildResult, dict[str, str]]:
    """Parse and render every post without touching the output directory.

    Returns the build result and the documents to write, keyed by file name
    relative to the output directory.
    """
    posts_dir = base_dir / options.posts_dir_path
    posts_label = options.posts_dir_path.rstrip("/")

    result = BuildResult(output_dir=base_dir / options.out_dir_path)
    documents: dict[str, str] = {}
    slug_owners: dict[str, str] = {}
    for name in list_post_files(posts_dir):
        source = f"{posts_label}/{name}"
        raw = (posts_dir / name).read_bytes()
        try:
            parsed = parse_document(raw)
        except FrontMatterError as exc:
            exc.source = source
            raise

        front_matter = parsed.front_matter
        if front_matter.draft:
            result.drafts.append(source)
            continue

        # An explicit slug wins even when empty; slugify() maps "" to "post".
        stem = name[: -len(POST_SUFFIX)]
        slug = slugify(front_matter.slug if front_matter.slug is not None else stem)
        owner = slug_owners.get(slug)
        if owner is not None:
            raise DuplicateSlugError(slug, source, owner)
        slug_owners[slug] = source

        try:
            body_html = render_markdown(parsed.body)
        except RenderError as exc:
            exc.source = source
            raise
        documents[f"{slug}.html"] = render_post_page(front_matter, body_html, options.site_title)
        result.posts.append(PostSummary.from_front_matter(front_matter, slug))

    result.posts = sort_summaries(result.posts)
    documents["feed.xml"] = render_feed(
        result.posts, options.base_url, options.site_title, options.site_description
    )
    documents["index.html"] = render_index_page(result.posts, options.site_title, options.site_description)
    return result, documents


def generate(base_dir: Path, options: GenerateOptions) -> BuildResult:
    base_dir = Path(base_dir)
    output_dir = prepare_output_dir(base_dir, options)
    # Any parse, slug, render or feed error is raised here, leaving the
    # previous output untouched.
    result, documents = render_site(base_dir, options)
    result.output_dir = output_dir

    clean_output_dir(output_dir)
    copy_static(base_dir / options.static_dir_path, output_dir)
    # Dicts keep insertion order: posts, then feed.xml, then index.html.
    for name, text in documents.items():
        write_text(output_dir / name, text)
    return result
