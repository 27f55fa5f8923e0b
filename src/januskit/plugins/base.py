"""Plugin descriptor shared by all plugin modules."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from januskit.core.handle import Handle


@dataclass(frozen=True)
class PluginDescriptor:
    """What a plugin module exports to applications.

    Attributes:
        id: Gateway plugin id, e.g. ``"janus.plugin.sip"``.
        handle_cls: Handle subclass to instantiate once attached.
        events: Stable public event vocabulary, name -> tag.
    """

    id: str
    handle_cls: type[Handle]
    events: Mapping[str, str] = field(default_factory=dict)

    def create_handle(self, handle_id: int | str, **kwargs: Any) -> Handle:
        return self.handle_cls(handle_id, **kwargs)
