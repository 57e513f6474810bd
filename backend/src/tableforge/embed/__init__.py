"""Embedded media providers.

Files whose ``type`` is an embed type (``embed/vimeo``, ``embed/youtube``)
are rendered through the matching provider's HTML snippet.
"""

from __future__ import annotations

import importlib
import logging
from html import escape
from typing import Any

logger = logging.getLogger(__name__)


class EmbedProvider:
    """Base class for embed providers.

    Subclasses set ``name`` and ``template``; the template is formatted
    with ``embed_id``, ``width`` and ``height``.
    """

    name = ""
    template = ""
    default_width = 640
    default_height = 360

    def __init__(self, settings: dict[str, Any] | None = None):
        self.settings = dict(settings or {})

    @property
    def type(self) -> str:
        return f"embed/{self.name}"

    def get_code(self, row: dict[str, Any]) -> str:
        """HTML snippet embedding the media described by ``row``."""
        return self.template.format(
            embed_id=escape(str(row.get("name", ""))),
            width=int(row.get("width") or self.default_width),
            height=int(row.get("height") or self.default_height),
        )


class VimeoProvider(EmbedProvider):
    name = "vimeo"
    template = (
        '<iframe src="//player.vimeo.com/video/{embed_id}?title=0&amp;byline=0&amp;portrait=0" '
        'width="{width}" height="{height}" frameborder="0" '
        "webkitallowfullscreen mozallowfullscreen allowfullscreen></iframe>"
    )


class YoutubeProvider(EmbedProvider):
    name = "youtube"
    default_width = 560
    default_height = 315
    template = (
        '<iframe width="{width}" height="{height}" '
        'src="//www.youtube.com/embed/{embed_id}" frameborder="0" allowfullscreen></iframe>'
    )


DEFAULT_PROVIDERS: tuple[type[EmbedProvider], ...] = (VimeoProvider, YoutubeProvider)


class EmbedManager:
    """Providers indexed by the file type they handle."""

    def __init__(self) -> None:
        self._providers: dict[str, EmbedProvider] = {}

    def register(self, provider: EmbedProvider) -> None:
        self._providers[provider.type] = provider

    def get_by_type(self, type: str | None) -> EmbedProvider | None:
        if not type:
            return None
        return self._providers.get(type)

    def providers(self) -> list[EmbedProvider]:
        return list(self._providers.values())


def load_provider_class(path: str) -> type[EmbedProvider]:
    """Import a provider class from ``package.module:ClassName`` or a dotted path."""
    if ":" in path:
        module_name, class_name = path.split(":", 1)
    else:
        module_name, _, class_name = path.rpartition(".")
    cls = getattr(importlib.import_module(module_name), class_name)
    if not (isinstance(cls, type) and issubclass(cls, EmbedProvider)):
        raise TypeError(f"{path} is not an EmbedProvider subclass")
    return cls


def create_embed_manager(
    settings: dict[str, Any] | None = None,
    custom_providers: list[str] | None = None,
) -> EmbedManager:
    """Build a manager with the stock providers plus any custom ones."""
    manager = EmbedManager()
    classes = list(DEFAULT_PROVIDERS)
    for path in custom_providers or []:
        classes.append(load_provider_class(path))
    for cls in classes:
        manager.register(cls(settings))
    logger.debug("Registered embed providers: %s", [p.type for p in manager.providers()])
    return manager


__all__ = [
    "DEFAULT_PROVIDERS",
    "EmbedManager",
    "EmbedProvider",
    "VimeoProvider",
    "YoutubeProvider",
    "create_embed_manager",
    "load_provider_class",
]
