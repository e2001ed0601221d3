"""Tool framework. ``build_registry`` assembles the tools the persona can call."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.tools.image_tools import RememberCharacterImageTool
from src.tools.memory_tools import ForgetFactTool, RecallFactsTool, RememberFactTool
from src.tools.registry import ToolRegistry
from src.tools.utility import CurrentDateTool
from src.tools.web_tools import ReadPageTool, SearchTool

if TYPE_CHECKING:
    from src.integrations.cloudinary import CloudinaryHasher
    from src.memory.store import MemoryStore
    from src.tools.image_tools import ImageDownloader


def build_registry(
    *,
    store: MemoryStore,
    hasher: CloudinaryHasher,
    download_image: ImageDownloader,
    google_api_key: str = "",
    google_engine_id: str = "",
    timezone: str = "Asia/Tokyo",
) -> ToolRegistry:
    """Register every tool. Search is always registered; it reports missing keys in-band."""
    registry = ToolRegistry()
    registry.register(SearchTool(google_api_key, google_engine_id))
    registry.register(CurrentDateTool(timezone))
    registry.register(ReadPageTool())
    registry.register(RememberFactTool(store))
    registry.register(RecallFactsTool(store))
    registry.register(ForgetFactTool(store))
    registry.register(RememberCharacterImageTool(store, hasher, download_image))
    return registry
