################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Reload the prescription map whenever its file changes on disk."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEvent
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from oasis_agbridge.dosing.prescription_map import PrescriptionStore


class PrescriptionFileHandler(FileSystemEventHandler):
    """Forwards changes of one file to the prescription store."""

    def __init__(self, store: PrescriptionStore) -> None:
        super().__init__()

        self._store: PrescriptionStore = store
        self._target: str = os.path.realpath(store.path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors and the map importer replace the file by renaming over it
        self._handle(getattr(event, "dest_path", ""))

    def _handle(self, path: object) -> None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if not isinstance(path, str) or not path:
            return
        if os.path.realpath(path) == self._target:
            self._store.reload()


class PrescriptionWatcher:
    """
    Watches the prescription file's directory with a watchdog observer.
    """

    def __init__(self, store: PrescriptionStore, logger: logging.Logger) -> None:
        self._store: PrescriptionStore = store
        self._log: logging.Logger = logger
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        """Load the current map and begin watching for changes."""
        self._store.reload()

        directory: Path = Path(self._store.path).resolve().parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            self._log.error(f"Cannot watch prescription directory {directory}: {err}")
            return

        observer = Observer()
        observer.schedule(
            PrescriptionFileHandler(self._store), str(directory), recursive=False
        )
        observer.daemon = True
        observer.start()
        self._observer = observer

        self._log.info(f"Watching prescription map {self._store.path}")

    def stop(self) -> None:
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join()
        self._observer = None
