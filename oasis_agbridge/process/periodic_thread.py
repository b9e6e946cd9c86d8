################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

import logging
import threading
from typing import Callable
from typing import Optional


class PeriodicThread(threading.Thread):
    """
    Runs a task at a fixed interval until stopped by a signal.
    """

    def __init__(
        self,
        name: str,
        interval_sec: float,
        task: Callable[[], None],
        logger: logging.Logger,
        run_immediately: bool = True,
    ):
        # Initialize thread
        super().__init__(name=name, daemon=True)

        # Construction parameters
        self._interval_sec = interval_sec
        self._task = task
        self._log = logger
        self._run_immediately = run_immediately

        # Threading parameters
        self._stop_event = threading.Event()

    def run(self) -> None:
        if self._run_immediately:
            self._run_task()

        while not self.wait_for_stop(self._interval_sec):
            self._run_task()

        self._log.debug(f"{self.name}: stopped")

    def stop(self) -> None:
        """
        Signal the stop event.
        """
        self._log.debug(f"{self.name}: received stop signal")
        self._stop_event.set()

    def should_stop(self) -> bool:
        """
        Check if the stop event has been signaled.

        :return: true if the event has been signaled, false otherwise
        """
        return self._stop_event.is_set()

    def wait_for_stop(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the thread to be stopped by a stop signal.

        :param timeout: The number of seconds to wait, or None to wait forever

        :return: true if the stop event has been signaled, false if a timeout occurred
        """
        return self._stop_event.wait(timeout)

    def _run_task(self) -> None:
        # A failing task must not end the schedule
        try:
            self._task()
        except Exception as exc:
            self._log.error(f"{self.name}: task failed: {exc!r}")
