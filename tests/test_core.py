"""Tests for front matter, post assembly, pagination and discovery."""

import os
import pytest
from datetime import datetime, timedelta
from pathlib import Path

from port_pkg.compiler import UnknownLanguageError
from port_pkg.core import (
    FrontMatter, FrontMatterError, PostProcessor, clean_dir, extract_metadata,
    find_categories, paginate, symlink,
)


class TestExtractMetadata:
    """Test cases for front matter parsing."""

    def test_full_front_matter(self):
        """Test both keys are parsed and the body is returned."""
        meta, body = extract_metadata("---\npublished_at: 03.14.2024 10:30\ndraft: true\n---\n# Title\n")

        assert meta.published_at == datetime(2024, 3, 14, 10, 30)
        assert meta.draft is True
        assert body == '# Title\n'

    def test_defaults_without_front_matter(self):
        """Test a document without front matter gets the defaults."""
        before = datetime.now()
        meta, body = extract_metadata("# Title\n\nBody\n")

        assert meta.draft is False
        assert before - timedelta(seconds=1) <= meta.published_at <= datetime.now()
        assert body == "# Title\n\nBody\n"

    def test_empty_front_matter(self):
        """Test an empty block gets the defaults."""
        meta, body = extract_metadata("---\n---\nBody\n")

        assert meta.draft is False
        assert body == 'Body\n'

    def test_unknown_keys_ignored(self):
        """Test extra keys do not fail the post."""
        meta, _ = extract_metadata("---\ntitle: Ignored\n---\nBody\n")
        assert meta.draft is False

    def test_invalid_date_format(self):
        """Test a published_at in another format is rejected."""
        with pytest.raises(FrontMatterError, match="published_at"):
            extract_metadata("---\npublished_at: 2024-03-14 10:30\n---\nBody\n")

    def test_invalid_draft(self):
        """Test a non boolean draft is rejected."""
        with pytest.raises(FrontMatterError, match="draft"):
            extract_metadata("---\ndraft: maybe\n---\nBody\n")

    def test_unclosed_block(self):
        """Test a block without closing delimiter is rejected."""
        with pytest.raises(FrontMatterError, match="not closed"):
            extract_metadata("---\ndraft: true\n# Title\n")

    def test_invalid_yaml(self):
        """Test broken YAML is rejected."""
        with pytest.raises(FrontMatterError, match="Invalid YAML"):
            extract_metadata("---\ndraft: [true\n---\nBody\n")

    def test_not_a_mapping(self):
        """Test a YAML list is rejected."""
        with pytest.raises(FrontMatterError, match="mapping"):
            extract_metadata("---\n- a\n- b\n---\nBody\n")

    def test_error_is_value_error(self):
        """Test front matter errors are value errors."""
        assert issubclass(FrontMatterError, ValueError)


class TestPostProcessor:
    """Test cases for assembling posts."""

    def test_process_post(self, temp_dir, make_post):
        """Test path derived fields and compiled output end up on the post."""
        path = make_post(temp_dir, 'notes/hello.md', "# Hello\n\nBody text.\n\n![Pic](pic.jpg)\n",
                         published_at='03.14.2024 10:30')
        post = PostProcessor().process('notes', path)

        assert post.url == 'notes/hello'
        assert post.slug == 'hello'
        assert post.category == 'notes'
        assert post.title == 'Hello'
        assert post.description == 'Body text.\n\n'
        assert post.image == 'pic.jpg'
        assert '<figure>' in post.html
        assert post.meta == FrontMatter(published_at=datetime(2024, 3, 14, 10, 30), draft=False)

    def test_no_description_for_empty_excerpt(self, temp_dir, make_post):
        """Test a post without body text has no description."""
        path = make_post(temp_dir, 'notes/title-only.md', "# Only a title\n")
        post = PostProcessor().process('notes', path)

        assert post.description is None
        assert post.image is None

    def test_front_matter_error_names_file(self, temp_dir, make_post):
        """Test content errors mention the offending file."""
        path = make_post(temp_dir, 'notes/bad.md', "---\ndraft: nope\n---\n# Bad\n")
        with pytest.raises(FrontMatterError, match="bad.md"):
            PostProcessor().process('notes', path)

    def test_unknown_language_names_file(self, temp_dir, make_post):
        """Test highlighting errors mention the offending file."""
        path = make_post(temp_dir, 'notes/code.md', "```klingon\nqapla'\n```\n")
        with pytest.raises(UnknownLanguageError, match="code.md"):
            PostProcessor().process('notes', path)

    def test_missing_file(self, temp_dir):
        """Test file system errors propagate."""
        with pytest.raises(FileNotFoundError):
            PostProcessor().process('notes', os.path.join(temp_dir, 'missing.md'))


class TestPaginate:
    """Test cases for pagination."""

    def test_five_posts_two_per_page(self):
        """Test page slices and prev/next numbering."""
        pages = list(paginate(['p0', 'p1', 'p2', 'p3', 'p4'], 2))

        assert len(pages) == 3
        assert (pages[0].posts, pages[0].prev, pages[0].next) == (['p0', 'p1'], None, 2)
        assert (pages[1].posts, pages[1].prev, pages[1].next) == (['p2', 'p3'], 1, 3)
        assert (pages[2].posts, pages[2].prev, pages[2].next) == (['p4'], 2, None)
        assert [page.page for page in pages] == [0, 1, 2]

    def test_single_page(self):
        """Test one page has neither previous nor next."""
        pages = list(paginate(['a', 'b'], 5))

        assert len(pages) == 1
        assert pages[0].prev is None
        assert pages[0].next is None

    def test_exact_multiple(self):
        """Test no empty trailing page is produced."""
        pages = list(paginate(list(range(4)), 2))

        assert len(pages) == 2
        assert pages[1].next is None

    def test_no_posts(self):
        """Test an empty collection has no pages."""
        assert list(paginate([], 3)) == []

    def test_restartable(self):
        """Test the pages can be iterated twice."""
        pages = paginate(list(range(3)), 2)
        assert list(pages) == list(pages)

    @pytest.mark.parametrize('per_page', [0, -1])
    def test_invalid_page_size(self, per_page):
        """Test a non positive page size is rejected up front."""
        with pytest.raises(ValueError, match="per_page"):
            paginate(['a'], per_page)


class TestFindCategories:
    """Test cases for discovering posts."""

    def test_categories(self, site_root):
        """Test posts are grouped by directory, skipping assets and root files."""
        categories = find_categories(site_root)

        assert sorted(categories) == ['notes', 'travel/asia']
        assert [os.path.basename(p) for p in categories['notes']] == [
            'draft.md', 'hello.md', 'older.md', 'second.md',
        ]
        assert [os.path.basename(p) for p in categories['travel/asia']] == ['tokyo.md']

    def test_skips_build_dir(self, site_root):
        """Test generated output is not mistaken for posts."""
        build = Path(site_root) / '.build' / 'notes'
        build.mkdir(parents=True)
        (build / 'stale.md').write_text('# Stale\n')

        categories = find_categories(site_root)
        assert all('.build' not in path for paths in categories.values() for path in paths)

    def test_missing_root(self, temp_dir):
        """Test a missing root is an error, not an empty site."""
        with pytest.raises(FileNotFoundError):
            find_categories(os.path.join(temp_dir, 'nope'))


class TestFileHelpers:
    """Test cases for clean_dir and symlink."""

    def test_clean_dir(self, temp_dir):
        """Test files, directories and symlinks are removed but targets survive."""
        target = Path(temp_dir) / 'target'
        target.mkdir()
        (target / 'keep.txt').write_text('keep')

        build = Path(temp_dir) / 'build'
        (build / 'sub').mkdir(parents=True)
        (build / 'file.txt').write_text('x')
        os.symlink(target, build / 'link')

        clean_dir(str(build))

        assert build.exists()
        assert list(build.iterdir()) == []
        assert (target / 'keep.txt').exists()

    def test_clean_missing_dir(self, temp_dir):
        """Test cleaning a missing directory is a no-op."""
        clean_dir(os.path.join(temp_dir, 'missing'))

    def test_symlink_replaces_existing(self, temp_dir):
        """Test an existing link is replaced."""
        first = Path(temp_dir) / 'first'
        second = Path(temp_dir) / 'second'
        first.mkdir()
        second.mkdir()
        link = Path(temp_dir) / 'link'

        symlink(str(first), str(link))
        symlink(str(second), str(link))

        assert os.readlink(link) == str(second)

    def test_symlink_dangling_target(self, temp_dir):
        """Test a link to a missing target is still created."""
        link = Path(temp_dir) / 'link'
        symlink(os.path.join(temp_dir, 'missing'), str(link))
        assert os.path.islink(link)
