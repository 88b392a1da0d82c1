"""
Stream Registry

Ordered list of the streams a session shows. Used only to build the
handle set; the controller never sees it.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Sequence, Tuple, TypeVar, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)

H = TypeVar("H")


@dataclass(frozen=True)
class StreamSpec:
    """One registry entry: id, display name and source locator."""
    id: Union[int, str]
    name: str
    url: str


# Streams served by the bundled HLS server (``streamsync-serve``)
LOCAL_STREAMS: Tuple[StreamSpec, ...] = tuple(
    StreamSpec(i, f"Stream {i}", f"http://localhost:8000/stream{i}/stream{i}.m3u8")
    for i in range(1, 6)
)

# Public demo HLS streams
REMOTE_STREAMS: Tuple[StreamSpec, ...] = (
    StreamSpec(1, "Stream 1", "https://test-streams.mux.dev/x36xhzz/x36xhzz.m3u8"),
    StreamSpec(2, "Stream 2", "https://cph-p2p-msl.akamaized.net/hls/live/2000341/test/master.m3u8"),
    StreamSpec(
        3, "Stream 3",
        "https://demo.unified-streaming.com/k8s/features/stable/video/"
        "tears-of-steel/tears-of-steel.ism/.m3u8",
    ),
    StreamSpec(
        4, "Stream 4",
        "https://devstreaming-cdn.apple.com/videos/streaming/examples/"
        "bipbop_16x9/bipbop_16x9_variant.m3u8",
    ),
    StreamSpec(5, "Stream 5", "https://mnmedias.api.telequebec.tv/m3u8/29880.m3u8"),
)

PRESETS = {
    "local": LOCAL_STREAMS,
    "remote": REMOTE_STREAMS,
}

PRESET_LABELS = {
    "local": "Local HLS server",
    "remote": "Public demo HLS streams",
}


def _spec_from_dict(entry: dict, position: int) -> StreamSpec:
    if not isinstance(entry, dict):
        raise ConfigError(f"stream #{position}: expected an object, got {type(entry).__name__}")

    stream_id = entry.get("id", position + 1)
    name = entry.get("name", entry.get("displayName"))
    url = entry.get("url", entry.get("sourceLocator"))

    if not url or not isinstance(url, str):
        raise ConfigError(f"stream #{position}: missing 'url'")
    if name is None:
        name = f"Stream {stream_id}"
    return StreamSpec(stream_id, str(name), url)


class StreamRegistry:
    """Ordered, non-empty collection of StreamSpecs with unique ids."""

    def __init__(self, specs: Sequence[StreamSpec], label: str = ""):
        specs = tuple(specs)
        if not specs:
            raise ConfigError("stream registry is empty")
        seen = set()
        for spec in specs:
            if spec.id in seen:
                raise ConfigError(f"duplicate stream id: {spec.id!r}")
            seen.add(spec.id)
        self._specs = specs
        self.label = label

    @classmethod
    def from_preset(cls, name: str) -> "StreamRegistry":
        try:
            specs = PRESETS[name]
        except KeyError:
            raise ConfigError(
                f"unknown stream preset {name!r} (choose from {', '.join(sorted(PRESETS))})"
            ) from None
        return cls(specs, PRESET_LABELS[name])

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "StreamRegistry":
        """
        Load a registry file.

        Accepts either a bare list of streams or ``{"streams": [...]}``.
        Each stream has ``id``, ``name`` (or ``displayName``) and ``url``
        (or ``sourceLocator``).
        """
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigError(f"cannot read stream registry {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON in {path}: {e}") from e

        label = path.name
        if isinstance(data, dict):
            label = str(data.get("label", label))
            data = data.get("streams")
        if not isinstance(data, list):
            raise ConfigError(f"{path}: expected a list of streams")

        specs = [_spec_from_dict(entry, i) for i, entry in enumerate(data)]
        logger.info("Loaded %d streams from %s", len(specs), path)
        return cls(specs, label)

    @property
    def specs(self) -> Tuple[StreamSpec, ...]:
        return self._specs

    def names(self) -> List[str]:
        return [spec.name for spec in self._specs]

    def build_handles(self, factory: Callable[[int, StreamSpec], H]) -> Tuple[H, ...]:
        """Create one handle per stream, in order. ``factory(index, spec)``."""
        return tuple(factory(i, spec) for i, spec in enumerate(self._specs))

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[StreamSpec]:
        return iter(self._specs)

    def __getitem__(self, index: int) -> StreamSpec:
        return self._specs[index]
