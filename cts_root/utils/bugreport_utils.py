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

"""Utils for generating and retrieving bugreports on a rooted device.

Bugreport operations run on worker threads and report back through a
`BugreportCallback`, the same way the platform delivers `onFinished` and
`onError` on an executor. The test thread then blocks on the callback with a
deadline.
"""

from __future__ import annotations

import datetime
import logging
import re
import threading
from typing import Optional, Union

from mobly import asserts
from mobly.controllers import android_device
from mobly.controllers.android_device_lib import adb

from cts_root.mobly.platforms.android.lib import completion_waiter
from cts_root.utils import android_utils

# Error codes reported to `BugreportCallback.on_error`.
BUGREPORT_ERROR_INVALID_INPUT = 1
BUGREPORT_ERROR_RUNTIME = 2
BUGREPORT_ERROR_USER_DENIED_CONSENT = 3
BUGREPORT_ERROR_USER_CONSENT_TIMED_OUT = 4
BUGREPORT_ERROR_ANOTHER_REPORT_IN_PROGRESS = 5
BUGREPORT_ERROR_NO_BUGREPORT_TO_RETRIEVE = 6

_NO_ERROR = -1

BUGREPORT_DIR = '/bugreports'
_DUMPSTATE_SERVICE = 'dumpstate'

# Shell commands
_BUGREPORTZ_CMD = 'bugreportz'
_INTERACTIVE_BUGREPORT_CMD = 'am bug-report'
_REMOVE_BUGREPORTS_CMD = f'rm -f -rR -v {BUGREPORT_DIR}/*'
_STOP_BUGREPORTD_CMD = 'setprop ctl.stop bugreportd'

_BUGREPORTZ_RESULT_REGEX = re.compile(r'^(?P<status>OK|FAIL):(?P<message>.*)$',
                                      re.MULTILINE)
_IN_PROGRESS_REGEX = re.compile(r'in progress', re.IGNORECASE)

# Logcat filter for the completion of an interactive bugreport.
_BUGREPORT_FINISHED_TAG = 'BugreportProgressService'
_BUGREPORT_FINISHED_PATTERN = r'.*(BUGREPORT_FINISHED|[Bb]ugreport finished).*'

# Resource IDs of the consent dialog
_CONSENT_TITLE_ID = 'android:id/alertTitle'
_CONSENT_DENY_ID = 'android:id/button2'

# Constants for operation time
BUGREPORT_TIMEOUT = datetime.timedelta(minutes=4)
_UIAUTOMATOR_TIMEOUT = datetime.timedelta(seconds=10)
_NO_CONSENT_DIALOG_TIMEOUT = datetime.timedelta(seconds=2)
_DUMPSTATE_POLLING_INTERVAL = datetime.timedelta(milliseconds=100)
_DUMPSTATE_MAX_ATTEMPTS = 250

# Error messages
_DUMPSTATE_NOT_STOPPED_MSG = 'Dumpstate did not stop within 25 seconds'
_CONSENT_DIALOG_NOT_GONE_MSG = 'The consent dialog did not go away'


class Error(Exception):
  """Raised when a bugreport operation cannot be completed."""


class BugreportCallback(object):
  """Receives the result of one bugreport operation.

  `on_finished` and `on_error` may be called from any thread. Only the first
  call is recorded, so a late signal from an earlier operation can never be
  attributed to this one.
  """

  def __init__(self) -> None:
    self._waiter = completion_waiter.CompletionWaiter.create()

  def on_finished(self, bugreport_file: Optional[str] = None) -> None:
    self._waiter.signal_success(bugreport_file)

  def on_error(self, error_code: int) -> None:
    self._waiter.signal_failure(error_code)

  def wait(self, timeout: Union[float, datetime.timedelta]) -> bool:
    """Returns True if the operation reported a result before the timeout."""
    return completion_waiter.is_terminal(self._waiter.wait(timeout))

  @property
  def outcome(self) -> completion_waiter.Outcome:
    return self._waiter.outcome

  @property
  def is_success(self) -> bool:
    return isinstance(self.outcome, completion_waiter.Success)

  @property
  def error_code(self) -> int:
    """The reported error code, -1 if no error was reported."""
    outcome = self.outcome
    if isinstance(outcome, completion_waiter.Failure):
      return outcome.code
    return _NO_ERROR

  @property
  def bugreport_file(self) -> Optional[str]:
    outcome = self.outcome
    if isinstance(outcome, completion_waiter.Success):
      return outcome.payload
    return None


def parse_bugreportz_output(output: str) -> tuple[bool, str]:
  """Parses the result line printed by `bugreportz`.

  Args:
    output: Full output of `bugreportz`, e.g. `OK:/bugreports/br.zip`.

  Returns:
    A tuple of success flag and the path (on success) or failure reason.

  Raises:
    Error: If the output has no result line.
  """
  matched = _BUGREPORTZ_RESULT_REGEX.search(output)
  if matched is None:
    raise Error(f'Unexpected bugreportz output: {output!r}')
  return matched['status'] == 'OK', matched['message'].strip()


def error_code_for_failure(reason: str) -> int:
  """Maps a `bugreportz` failure reason to a bugreport error code."""
  if _IN_PROGRESS_REGEX.search(reason):
    return BUGREPORT_ERROR_ANOTHER_REPORT_IN_PROGRESS
  return BUGREPORT_ERROR_RUNTIME


def _start_worker(name: str, target) -> threading.Thread:
  thread = threading.Thread(target=target, name=name)
  thread.daemon = True
  thread.start()
  return thread


def start_bugreport(
    ad: android_device.AndroidDevice,
    callback: BugreportCallback,
) -> threading.Thread:
  """Starts generating a zipped bugreport into `/bugreports`.

  The result is delivered on a worker thread: `on_finished(path)` with the
  path of the report on the device, or `on_error(code)`.

  Args:
    ad: The Android device to generate the bugreport on.
    callback: Receives the result.

  Returns:
    The worker thread.
  """

  def _task():
    try:
      output = android_utils.run_shell_command(ad, _BUGREPORTZ_CMD)
      succeeded, message = parse_bugreportz_output(output)
    except Exception:  # pylint: disable=broad-except
      # Any error must reach the callback, the test thread is waiting on it.
      ad.log.exception('Failed to generate bugreport.')
      callback.on_error(BUGREPORT_ERROR_RUNTIME)
      return
    if succeeded:
      ad.log.info('Bugreport generated at %s', message)
      callback.on_finished(message)
    else:
      ad.log.info('Bugreport generation failed: %s', message)
      callback.on_error(error_code_for_failure(message))

  return _start_worker(f'bugreport-{ad.serial}', _task)


def retrieve_bugreport(
    ad: android_device.AndroidDevice,
    bugreport_file: str,
    destination: str,
    callback: BugreportCallback,
) -> threading.Thread:
  """Pulls a previously generated bugreport to a host file.

  Args:
    ad: The Android device holding the bugreport.
    bugreport_file: The path of the bugreport on the device.
    destination: The host path to write the bugreport to.
    callback: Receives `on_finished(destination)` or `on_error(code)`.

  Returns:
    The worker thread.
  """

  def _task():
    try:
      if not android_utils.get_file_size(ad, bugreport_file):
        callback.on_error(BUGREPORT_ERROR_NO_BUGREPORT_TO_RETRIEVE)
        return
      ad.adb.pull([bugreport_file, destination])
    except Exception:  # pylint: disable=broad-except
      ad.log.exception('Failed to retrieve bugreport %s.', bugreport_file)
      callback.on_error(BUGREPORT_ERROR_RUNTIME)
      return
    callback.on_finished(destination)

  return _start_worker(f'retrieve-bugreport-{ad.serial}', _task)


def deny_consent_dialog(
    ad: android_device.AndroidDevice,
    timeout: datetime.timedelta = _UIAUTOMATOR_TIMEOUT,
) -> bool:
  """Denies the bugreport consent dialog if it shows up within `timeout`.

  Returns:
    True if a dialog was shown and dismissed, False if none showed up.
  """
  if not android_utils.has_ui_object(ad, timeout, res=_CONSENT_TITLE_ID):
    return False
  asserts.assert_true(
      ad.uia(res=_CONSENT_DENY_ID).click(),
      'Failed to press the deny button of consent dialog.',
  )
  asserts.assert_true(
      android_utils.wait_ui_object_gone(
          ad, _UIAUTOMATOR_TIMEOUT, res=_CONSENT_TITLE_ID
      ),
      _CONSENT_DIALOG_NOT_GONE_MSG,
  )
  return True


def ensure_no_consent_dialog_shown(ad: android_device.AndroidDevice) -> None:
  """Denies a leftover consent dialog, if any."""
  if deny_consent_dialog(ad, timeout=_NO_CONSENT_DIALOG_TIMEOUT):
    ad.log.info('Dismissed a leftover bugreport consent dialog.')


def wait_for_dumpstate_service_to_stop(
    ad: android_device.AndroidDevice) -> None:
  """Fails the test if dumpstate is still running after 25 seconds."""
  if not android_utils.wait_for_service_to_stop(
      ad,
      _DUMPSTATE_SERVICE,
      interval=_DUMPSTATE_POLLING_INTERVAL,
      max_attempts=_DUMPSTATE_MAX_ATTEMPTS,
  ):
    asserts.fail(_DUMPSTATE_NOT_STOPPED_MSG)


def trigger_shell_bugreport(
    ad: android_device.AndroidDevice,
    timeout: datetime.timedelta = BUGREPORT_TIMEOUT,
) -> str:
  """Requests an interactive bugreport and waits for it to finish.

  Requires the logcat publisher service, see
  `android_utils.start_logcat_publisher`.

  Returns:
    The logcat message announcing the finished bugreport.

  Raises:
    Error: If the bugreport did not finish within `timeout`.
  """
  outcome = ad.services.logcat_pubsub.wait_for_line(
      lambda: ad.adb.shell(_INTERACTIVE_BUGREPORT_CMD),
      timeout,
      pattern=_BUGREPORT_FINISHED_PATTERN,
      tag=_BUGREPORT_FINISHED_TAG,
  )
  if not isinstance(outcome, completion_waiter.Success):
    raise Error(
        'Failed to receive BUGREPORT_FINISHED in '
        f'{timeout.total_seconds():.0f} seconds.'
    )
  logging.info('Shell bugreport finished: %s', outcome.payload)
  return outcome.payload


def stop_bugreportd(ad: android_device.AndroidDevice) -> None:
  """Kills the current bugreport so it does not interfere with later ones."""
  ad.adb.shell(_STOP_BUGREPORTD_CMD)


def remove_all_bugreports(ad: android_device.AndroidDevice) -> None:
  """Removes every bugreport file in `/bugreports`."""
  try:
    ad.adb.shell(_REMOVE_BUGREPORTS_CMD)
  except adb.AdbError:
    ad.log.exception('Failed to remove bugreports.')
