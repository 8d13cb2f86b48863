import os
import shutil
import logging
import posixpath
import yaml
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape
from jinja2 import Environment, FileSystemLoader, TemplateError

from .compiler import UnknownLanguageError, compile_markdown
from .settings import Config
from .tokens import create_parser, create_renderer

# Directory name that hosts static assets.
ASSETS_DIR = 'assets'

# Directory under the site root that receives the generated site.
BUILD_DIR = '.build'

# Format of the `published_at` front matter field.
PUBLISHED_AT_FORMAT = '%m.%d.%Y %H:%M'

FEED_LIMIT = 20

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

logger = logging.getLogger('Port')


class FrontMatterError(ValueError):
    """A post's front matter block is malformed."""


@dataclass
class FrontMatter:
    published_at: datetime = field(default_factory=datetime.now)
    draft: bool = False


@dataclass
class Post:
    url: str
    slug: str
    category: str
    html: str
    title: str
    description: Optional[str]
    image: Optional[str]
    meta: FrontMatter


@dataclass
class Category:
    slug: str
    posts: List[Post]


@dataclass
class Page:
    page: int
    prev: Optional[int]
    next: Optional[int]
    posts: List[Post]


class Paginator:
    """Iterate over a collection of posts in pages. Can be iterated more than once."""

    def __init__(self, posts, per_page):
        if per_page <= 0:
            raise ValueError("`per_page` must be > 0.")
        self.posts = list(posts)
        self.per_page = per_page

    def __len__(self):
        return (len(self.posts) + self.per_page - 1) // self.per_page

    def __iter__(self):
        n_pages = len(self)
        for i in range(n_pages):
            start = i * self.per_page
            yield Page(
                page=i,
                prev=i if i > 0 else None,
                next=i + 2 if i < n_pages - 1 else None,
                posts=self.posts[start:start + self.per_page],
            )


def paginate(posts, per_page):
    """Split posts into pages of `per_page` posts."""
    return Paginator(posts, per_page)


def split_front_matter(raw):
    """
    Split a leading `---` delimited block from a document.
    Returns (block, body); block is None when the document has none.
    """
    text = raw.lstrip('\ufeff')
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != '---':
        return None, text
    for i in range(1, len(lines)):
        if lines[i].strip() == '---':
            return ''.join(lines[1:i]), ''.join(lines[i + 1:])
    raise FrontMatterError("Front matter block is not closed")


def parse_published_at(value):
    """Parse a `published_at` value in `MM.DD.YYYY HH:MM` format."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    try:
        return datetime.strptime(str(value).strip(), PUBLISHED_AT_FORMAT)
    except ValueError:
        raise FrontMatterError(
            f"Invalid published_at {value!r}, expected format MM.DD.YYYY HH:MM"
        )


def extract_metadata(raw):
    """
    Extract YAML front matter from a string.
    This returns the front matter and the rest of the string's contents.
    """
    block, body = split_front_matter(raw)
    meta = FrontMatter()
    if block is None:
        return meta, body

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise FrontMatterError(f"Invalid YAML front matter: {e}")
    if data is None:
        return meta, body
    if not isinstance(data, dict):
        raise FrontMatterError("Front matter must be a mapping")

    if data.get('published_at') is not None:
        meta.published_at = parse_published_at(data['published_at'])
    if data.get('draft') is not None:
        if not isinstance(data['draft'], bool):
            raise FrontMatterError(f"Invalid draft {data['draft']!r}, expected true or false")
        meta.draft = data['draft']
    return meta, body


def _raise(error):
    raise error


def find_categories(root) -> Dict[str, List[str]]:
    """Find all post category directories under a root path."""
    categories: Dict[str, List[str]] = {}
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames[:] = sorted(d for d in dirnames if d not in (ASSETS_DIR, BUILD_DIR))
        rel_dir = os.path.relpath(dirpath, root)
        for filename in sorted(filenames):
            if not filename.endswith('.md'):
                continue
            path = os.path.join(dirpath, filename)
            if rel_dir == os.curdir:
                logger.warning(f"Skipping {path}: posts must live in a category directory")
                continue
            slug = rel_dir.replace(os.sep, '/')
            categories.setdefault(slug, []).append(path)
    return categories


def symlink(target, link):
    """Create or update a symlink."""
    if os.path.lexists(link):
        os.remove(link)
    os.symlink(target, link)


def clean_dir(path):
    """Remove all files and directories under the specified path."""
    if not os.path.isdir(path):
        return
    for item in os.listdir(path):
        item_path = os.path.join(path, item)
        if os.path.isdir(item_path) and not os.path.islink(item_path):
            shutil.rmtree(item_path)
        else:
            os.remove(item_path)


class PostProcessor:
    """Turn a markdown file into a Post."""

    def __init__(self):
        self.logger = logging.getLogger('Port.PostProcessor')
        self.markdown_parser = create_parser()
        self.renderer = create_renderer()

    def parse_markdown_with_metadata(self, filepath):
        """Parse a markdown file with YAML front matter."""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        try:
            return extract_metadata(content)
        except FrontMatterError as e:
            raise FrontMatterError(f"{filepath}: {e}") from e

    def process(self, category, file_path):
        """Compile a single post of the given category."""
        slug = os.path.splitext(os.path.basename(file_path))[0]
        meta, body = self.parse_markdown_with_metadata(file_path)
        try:
            compiled = compile_markdown(body, self.markdown_parser, self.renderer)
        except UnknownLanguageError as e:
            raise UnknownLanguageError(f"{file_path}: {e}") from e

        post = Post(
            url=f"{category}/{slug}",
            slug=slug,
            category=category,
            html=compiled.html,
            title=compiled.title,
            description=compiled.description,
            image=compiled.main_image,
            meta=meta,
        )
        self.logger.debug(f"Compiled {file_path} -> {post.url}")
        return post


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Building site",
            "Building category",
            "Building index page",
            "Building 404 page",
            "Generating RSS feed",
            "Total posts generated:",
            "Done building",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


class Port:
    def __init__(self, config: Config, templates_dir=None, log_dir=None):
        self.config = config
        self.templates_dir = templates_dir or PACKAGE_TEMPLATES
        self.log_dir = log_dir
        self.posts_generated = 0

        if not os.path.isdir(self.templates_dir):
            raise FileNotFoundError(f"Templates directory not found: {self.templates_dir}")

        self.setup_logging()
        self.env = Environment(loader=FileSystemLoader(self.templates_dir))
        self.processor = PostProcessor()

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Port')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

            # File handler for all logs
            if self.log_dir:
                os.makedirs(self.log_dir, exist_ok=True)
                log_filename = datetime.now().strftime('port_%Y-%m-%d_%H-%M-%S.log')
                file_handler = logging.FileHandler(os.path.join(self.log_dir, log_filename))
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(
                    logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
                )
                self.logger.addHandler(file_handler)

    def build_dir(self):
        return os.path.join(os.path.abspath(self.config.root), BUILD_DIR)

    def render_template(self, template_name, **context):
        """Render a Jinja2 template."""
        try:
            template = self.env.get_template(template_name)
            return template.render(site=self.config, **context)
        except TemplateError as e:
            self.logger.error(f"Template error in {template_name}: {e}")
            raise

    def write_file(self, path, content):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        self.logger.debug(f"Generated: {path}")

    def build_index(self, path, posts):
        """
        Build paginated index pages for `path` ('' for the site root).
        - <path>/index.html for the first page
        - <path>/p/<n>/index.html for pages 2..n
        """
        base = posixpath.join('/', path)
        posts = [post for post in posts if not post.meta.draft]

        for page in paginate(posts, self.config.per_page):
            if page.page == 0:
                page_path = path
            else:
                page_path = posixpath.join(path, 'p', str(page.page + 1))

            prev_page = None
            if page.prev is not None:
                prev_page = base if page.prev == 1 else posixpath.join(base, 'p', str(page.prev))
            next_page = None
            if page.next is not None:
                next_page = posixpath.join(base, 'p', str(page.next))

            html = self.render_template(
                'index.html',
                posts=page.posts,
                prev_page=prev_page,
                next_page=next_page,
                current_url=posixpath.join(self.config.url.rstrip('/'), page_path),
            )
            self.write_file(os.path.join(self.build_dir(), page_path, 'index.html'), html)

    def compile_rss(self, path, posts):
        """Write an RSS feed of `posts` to `path`."""
        offset = timezone(timedelta(minutes=self.config.timezone))
        site_url = self.config.url.rstrip('/')

        rss_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel>
<title>{escape(self.config.name)}</title>
<link>{escape(self.config.url)}</link>
<description>{escape(self.config.desc)}</description>
'''
        for post in posts:
            link = escape(f"{site_url}/{post.url}")
            pub_date = format_datetime(post.meta.published_at.replace(tzinfo=offset))
            description = ''
            if post.description:
                description = f"\n<description>{escape(post.description)}</description>"

            rss_content += f'''
<item>
<title>{escape(post.title)}</title>
<link>{link}</link>{description}
<content:encoded>{escape(post.html)}</content:encoded>
<pubDate>{pub_date}</pubDate>
<category>{escape(post.category)}</category>
<guid>{link}</guid>
</item>'''

        rss_content += '''
</channel>
</rss>'''
        self.write_file(path, rss_content)

    def build_posts(self, posts):
        """Build a page for every post, drafts included."""
        for post in posts:
            html = self.render_template(
                'post.html',
                post=post,
                category=post.category,
                current_url=f"{self.config.url.rstrip('/')}/{post.url}",
            )
            self.write_file(os.path.join(self.build_dir(), post.url, 'index.html'), html)
            self.posts_generated += 1

    def build_category(self, slug, posts):
        """Build the index pages, post pages and feed of one category."""
        self.logger.info(f"Building category {slug}")
        self.build_index(slug, posts)
        self.build_posts(posts)

        rss_name = f"{slug.replace('/', '.')}.xml"
        rss_posts = [post for post in posts if not post.meta.draft][:FEED_LIMIT]
        self.compile_rss(os.path.join(self.build_dir(), 'rss', rss_name), rss_posts)

    def build_static(self, template):
        """Render a template that does not depend on posts."""
        html = self.render_template(template, current_url=f"{self.config.url.rstrip('/')}/{template}")
        self.write_file(os.path.join(self.build_dir(), template), html)

    def load_categories(self):
        """Compile every post, grouped by category and sorted newest first."""
        categories = []
        for slug, paths in sorted(find_categories(self.config.root).items()):
            posts = [self.processor.process(slug, path) for path in paths]
            posts.sort(key=lambda post: post.meta.published_at, reverse=True)
            categories.append(Category(slug=slug, posts=posts))
        return categories

    def build(self):
        """Main build process."""
        root = os.path.abspath(self.config.root)
        if not os.path.isdir(root):
            raise FileNotFoundError(f"Site root not found: {root}")
        self.posts_generated = 0
        build_dir = self.build_dir()
        os.makedirs(build_dir, exist_ok=True)
        clean_dir(build_dir)

        rss_dir = os.path.join(build_dir, 'rss')
        os.makedirs(rss_dir, exist_ok=True)

        symlink(os.path.join(root, ASSETS_DIR), os.path.join(build_dir, ASSETS_DIR))
        symlink(os.path.join(root, ASSETS_DIR, 'favicon.ico'), os.path.join(build_dir, 'favicon.ico'))
        symlink(os.path.abspath(os.path.join(self.templates_dir, 'css')), os.path.join(build_dir, 'css'))

        self.logger.info("Building 404 page")
        self.build_static('404.html')

        categories = self.load_categories()
        for category in categories:
            self.build_category(category.slug, category.posts)

        posts = [post for category in categories for post in category.posts]
        posts.sort(key=lambda post: post.meta.published_at, reverse=True)

        self.logger.info("Building index page")
        self.build_index('', posts)

        self.logger.info("Generating RSS feed")
        rss_posts = [post for post in posts if not post.meta.draft][:FEED_LIMIT]
        self.compile_rss(os.path.join(rss_dir, 'rss.xml'), rss_posts)

        self.logger.info(f"Total posts generated: {self.posts_generated}")
        return categories
