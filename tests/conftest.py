"""Test configuration and fixtures for Port tests."""

import pytest
import tempfile
import shutil
import os
from pathlib import Path
import yaml

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from port_pkg.settings import Config, Link


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def make_post():
    """Return a helper that writes a post with optional front matter."""
    def _make_post(root, rel_path, body, published_at=None, draft=None):
        path = Path(root) / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        front_matter = {}
        if published_at is not None:
            front_matter['published_at'] = published_at
        if draft is not None:
            front_matter['draft'] = draft
        content = body
        if front_matter:
            content = f"---\n{yaml.safe_dump(front_matter)}---\n\n{body}"
        path.write_text(content, encoding='utf-8')
        return str(path)
    return _make_post


@pytest.fixture
def site_root(temp_dir, make_post):
    """Create a site source tree with two categories, a draft and assets."""
    root = Path(temp_dir) / 'site'

    make_post(root, 'notes/hello.md', """# Hello, *world*

First post body.

![Sunset](/assets/sunset.jpg)
""", published_at='03.14.2024 10:30')

    make_post(root, 'notes/second.md', """# Second post

Some code:

```python
print('hi')
```
""", published_at='03.15.2024 09:00')

    make_post(root, 'notes/older.md', "# Older post\n\nOld news.\n", published_at='01.02.2024 08:00')

    make_post(root, 'notes/draft.md', "# Draft\n\nNot yet.\n", published_at='03.20.2024 12:00', draft=True)

    make_post(root, 'travel/asia/tokyo.md', """# Tokyo

![Clip](/assets/tokyo.mp4)

Neon lights.
""", published_at='02.01.2024 18:45')

    # Not a post: lives directly in the root
    (root / 'README.md').write_text("# Readme\n", encoding='utf-8')

    assets = root / 'assets'
    assets.mkdir(parents=True)
    (assets / 'favicon.ico').write_bytes(b'\x00\x00\x01\x00')
    (assets / 'ignored.md').write_text("# Not a post\n", encoding='utf-8')

    return str(root)


@pytest.fixture
def site_config(site_root):
    """Site configuration pointing at the sample site tree."""
    return Config(
        root=site_root,
        name='Test Site',
        url='https://example.com',
        desc='A test site',
        image='https://example.com/assets/cover.png',
        links=[Link(url='https://github.com/example', name='GitHub')],
        timezone=60,
        per_page=2,
    )


@pytest.fixture
def config_file(temp_dir, site_root):
    """Write a YAML configuration file for the sample site."""
    path = os.path.join(temp_dir, 'port.yml')
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump({
            'root': site_root,
            'name': 'Test Site',
            'url': 'https://example.com',
            'desc': 'A test site',
            'image': 'https://example.com/assets/cover.png',
            'links': [{'url': 'https://github.com/example', 'name': 'GitHub'}],
            'timezone': 60,
            'per_page': 2,
        }, f)
    return path
