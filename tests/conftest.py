"""Shared fixtures: a host world of registered signs and a service factory."""

from __future__ import annotations

import asyncio
import io
from typing import Callable, Optional

import pytest
from PIL import Image

from dal.image_archive_dal import ImageArchive
from services.collection_repository import CollectionRepository
from services.image_resizer import ImageResizer
from services.image_service import ImageService
from services.world import InMemoryWorld
from utils.permissions import StaticPermissionOracle
from utils.settings import Settings

START = 1_700_000_000


def make_png(size=(32, 16), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeClock:
    def __init__(self, now: int = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class SpyResizer(ImageResizer):
    """Records every resize call before delegating to Pillow."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = []

    def resize(self, data: bytes, width: int, height: int) -> bytes:
        self.calls.append((data, width, height))
        return super().resize(data, width, height)


@pytest.fixture
def png() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def world() -> InMemoryWorld:
    world = InMemoryWorld()
    world.register("sign-1", "sign.small.wood", owner_id="alice")
    world.register("frame-1", "sign.pictureframe.xl", owner_id="alice", editors=["bob"])
    world.register("blank-1", "sign.medium.wood", owner_id="alice")
    world.register("other-1", "sign.large.wood", owner_id="mallory")
    asyncio.run(world.store(world.find("alice", "sign-1"), make_png()))
    asyncio.run(world.store(world.find("alice", "other-1"), make_png(color=(0, 0, 255))))
    return world


@pytest.fixture
def make_service(tmp_path, world, clock) -> Callable[..., ImageService]:
    """Return a factory building an ImageService over the fixture world."""

    def factory(
        settings: Optional[Settings] = None,
        oracle: Optional[StaticPermissionOracle] = None,
        archive: Optional[ImageArchive] = None,
        resizer: Optional[ImageResizer] = None,
        repository: Optional[CollectionRepository] = None,
        locator=None,
    ) -> ImageService:
        settings = settings or Settings()
        return ImageService(
            repository or CollectionRepository(),
            locator=locator or world,
            textures=world,
            archive=archive or ImageArchive(tmp_path / "images"),
            settings=settings,
            oracle=oracle or StaticPermissionOracle.from_settings(settings),
            resizer=resizer,
            clock=clock,
        )

    return factory


@pytest.fixture
def spy_resizer() -> SpyResizer:
    return SpyResizer()
