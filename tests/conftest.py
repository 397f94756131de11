"""
Pytest configuration and global fixtures.
"""
import asyncio
import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Settings
from core.models import Region, RetryConfig
from data.database import DatabaseManager
from data.image_store import ImageStore
from data.session_store import InMemorySessionStore


def make_png(width: int = 100, height: int = 100, color: str = 'white') -> bytes:
    """Encode a solid PNG with a dark bar so enhancement has contrast to work on."""
    img = Image.new('RGB', (width, height), color=color)
    draw = ImageDraw.Draw(img)
    draw.rectangle([width // 4, height // 3, width // 2, height // 2], fill='black')
    buf = BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def make_region(region_id: str = 'r1', x=0, y=0, width=50, height=50, **kwargs) -> Region:
    return Region(id=region_id, x=x, y=y, width=width, height=height, color=kwargs.pop('color', '#ff0000'), **kwargs)


class FakeVisionService:
    """
    Stand-in for VisionService.

    ``script`` holds one entry per call: a string is returned, an exception
    is raised. Once exhausted, ``default_text`` is returned.
    """

    def __init__(self, script=None, delay: float = 0.0, default_text: str = 'text'):
        self.script = list(script or [])
        self.delay = delay
        self.default_text = default_text
        self.requests = []
        self.active = 0
        self.max_active = 0
        self.events = []

    async def extract_text(self, request):
        self.requests.append(request)
        call_index = len(self.requests)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.events.append(('start', call_index))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.script.pop(0) if self.script else self.default_text
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.active -= 1
            self.events.append(('end', call_index))


@pytest.fixture
def temp_dir(tmp_path):
    """Provide temporary directory for test files."""
    return tmp_path


@pytest.fixture
def sample_png():
    """100x100 PNG image bytes."""
    return make_png(100, 100)


@pytest.fixture
def test_settings(temp_dir):
    """Settings pointing at a temporary upload directory."""
    return Settings(
        gemini_api_key='test-key',
        upload_dir=str(temp_dir / 'uploads'),
        database_url=f"sqlite:///{temp_dir / 'images.db'}",
        api_timeout=2000,
        ocr_concurrency_limit=3,
        max_file_size=1024 * 1024,
        _env_file=None
    )


@pytest.fixture
def db_manager(temp_dir):
    manager = DatabaseManager(f"sqlite:///{temp_dir / 'registry.db'}")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def image_store(temp_dir, db_manager):
    return ImageStore(
        upload_dir=str(temp_dir / 'store'),
        db_manager=db_manager,
        max_file_size=1024 * 1024
    )


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def fast_retry_config():
    """Default policy shape with millisecond delays."""
    return RetryConfig(base_delay=1, max_delay=5)
