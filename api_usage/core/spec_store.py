"""
Published specification and its periodic reload.

The store holds exactly one reference to the current Specification. A reload
builds a complete new Specification off to the side and only then swaps the
reference, so request handlers always see either the old or the new one,
never a tree that is still being built. A failed reload leaves the previous
specification in place.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from api_usage.core.config import OpenAPISettings
from api_usage.core.errors import ExporterError
from api_usage.core.openapi.loader import load_file, load_url
from api_usage.core.routing.specification import Specification

log = logging.getLogger("api_usage.spec")

PublishListener = Callable[[Specification], None]
ReloadListener = Callable[[bool], None]


class SpecificationStore:
    def __init__(self, spec: Optional[Specification] = None):
        self._lock = threading.Lock()
        self._spec = spec
        self._listeners: List[PublishListener] = []

    def current(self) -> Optional[Specification]:
        return self._spec

    def publish(self, spec: Specification) -> None:
        with self._lock:
            self._spec = spec
            listeners = list(self._listeners)
        for listener in listeners:
            listener(spec)

    def subscribe(self, listener: PublishListener) -> None:
        with self._lock:
            self._listeners.append(listener)
        if self._spec is not None:
            listener(self._spec)


@dataclass(frozen=True)
class SpecificationSource:
    url: Optional[str] = None
    file: Optional[str] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if bool(self.url) == bool(self.file):
            raise ValueError("exactly one of url or file is required")

    @classmethod
    def from_settings(cls, settings: OpenAPISettings) -> "SpecificationSource":
        return cls(url=settings.url, file=settings.file, timeout=settings.timeout)

    def describe(self) -> str:
        return self.url or str(self.file)

    def load(self) -> Specification:
        if self.url:
            return load_url(self.url, timeout=self.timeout)
        return load_file(Path(str(self.file)))


def load_specification(
    store: SpecificationStore, source: SpecificationSource, reloaded: bool = False
) -> Specification:
    """Load, build and publish. Raises on failure; the store is left as is."""
    started = time.perf_counter()
    spec = source.load()
    store.publish(spec)
    log.info(
        "OpenAPI specification %s source=%s title=%r version=%r base_path=%r endpoints=%d duration_ms=%d",
        "reloaded" if reloaded else "loaded",
        source.describe(),
        spec.meta.title,
        spec.meta.version,
        spec.meta.base_path,
        spec.meta.endpoint_count,
        int((time.perf_counter() - started) * 1000),
    )
    return spec


class SpecificationReloader:
    """Re-fetch the specification every ``interval`` seconds on a daemon thread."""

    def __init__(
        self,
        store: SpecificationStore,
        source: SpecificationSource,
        interval: float,
        on_result: Optional[ReloadListener] = None,
    ):
        if interval <= 0:
            raise ValueError("reload interval must be positive")
        self.store = store
        self.source = source
        self.interval = interval
        self._on_result = on_result
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def reload_now(self) -> bool:
        try:
            load_specification(self.store, self.source, reloaded=True)
        except ExporterError as e:
            log.error("Failed to reload OpenAPI specification, keeping the previous one: %s", e)
            ok = False
        except Exception:
            log.exception("Unexpected error while reloading OpenAPI specification, keeping the previous one")
            ok = False
        else:
            ok = True
        if self._on_result is not None:
            self._on_result(ok)
        return ok

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.reload_now()
            except Exception:
                # A failing result listener must not stop the reload thread
                log.exception("OpenAPI reload result listener failed")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="openapi-reloader", daemon=True)
        self._thread.start()
        log.info("OpenAPI reload job started interval_s=%s", self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
