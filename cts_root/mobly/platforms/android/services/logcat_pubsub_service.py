# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Mobly service turning device logcat lines into bounded waits.

Registered as `ad.services.logcat_pubsub`. Test code hands the service an
action that makes the device log something and gets back the waiter outcome
of the first matching line.
"""

import dataclasses
import datetime
from typing import Any, Callable, Optional, Union

from mobly.controllers.android_device_lib.services import base_service

from cts_root.mobly.platforms.android.lib import completion_waiter
from cts_root.mobly.platforms.android.services import logcat_pubsub

SERVICE_NAME = 'logcat_pubsub'


@dataclasses.dataclass(frozen=True)
class LogcatPublisherConfig:
  """Config of the logcat publisher service.

  Attributes:
    logcat_file_path: Host path of the logcat file to tail. When unset, the
      file written by the device's Mobly logcat service is used.
  """
  logcat_file_path: Optional[str] = None


class LogcatPublisherService(base_service.BaseService):
  """Publishes the logcat of one device to event subscribers."""

  def __init__(self, device, configs: Optional[LogcatPublisherConfig] = None):
    super().__init__(device, configs or LogcatPublisherConfig())
    self.publisher = logcat_pubsub.LogcatPublisher(
        logcat_file_path=self.logcat_file_path)

  @property
  def logcat_file_path(self) -> str:
    if self._configs.logcat_file_path:
      return self._configs.logcat_file_path
    return self._device.services.logcat.adb_logcat_file_path

  @property
  def is_alive(self) -> bool:
    return self.publisher.is_active

  def start(self):
    if not self.is_alive:
      self.publisher.start()

  def stop(self):
    self.publisher.stop()

  def event(self, pattern='.*', tag='*', level='V'):
    """Returns a `LogcatEventSubscriber` subscribed to this device's logcat."""
    return self.publisher.event(pattern=pattern, tag=tag, level=level)

  def wait_for_line(
      self,
      action: Callable[[], Any],
      timeout: Union[float, datetime.timedelta],
      pattern: str = '.*',
      tag: str = '*',
      level: str = 'V',
  ) -> completion_waiter.WaitResult:
    """Runs `action` and waits for the first logcat line matching the filter.

    The subscription is in place before `action` runs, so a line logged while
    `action` is still running is not missed.

    Args:
      action: Makes the device log the expected line, e.g. a shell command.
      timeout: float in seconds or timedelta, how long to wait after `action`
        returns.
      pattern: Regular expression the log message must match.
      tag: Tag portion of filterspec string.
      level: Level portion of filterspec string.

    Returns:
      `Success(message)` of the first matching line, or `TIMED_OUT`.
    """
    with self.event(pattern=pattern, tag=tag, level=level) as event:
      action()
      outcome = event.wait_outcome(timeout)
    if isinstance(outcome, completion_waiter.TimedOut):
      self._device.log.debug(
          'No logcat line with tag %s matched %r in time.', tag, pattern)
    return outcome
