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

"""Utils for driving a rooted Android device from the host."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import datetime
import logging
import re
from typing import Optional, Union

from mobly import asserts
from mobly.controllers import android_device
from mobly.controllers.android_device_lib import adb
from snippet_uiautomator import uiautomator

from cts_root.mobly.platforms.android.lib import polling
from cts_root.mobly.platforms.android.services import logcat_pubsub_service

ShellCommand = Union[str, Sequence[str]]

_SERVICE_NOT_FOUND_SUFFIX = ': not found'

# Constants for operation time
_DEFAULT_POLLING_INTERVAL = datetime.timedelta(seconds=1)
_DEFAULT_CONDITION_TIMEOUT = datetime.timedelta(seconds=30)
_SERVICE_STOP_POLLING_INTERVAL = datetime.timedelta(milliseconds=100)
_SERVICE_STOP_MAX_ATTEMPTS = 250

# Error messages
_CONDITION_NOT_TRUE_MSG = 'The condition is not true after timeout.'
_NOT_ROOTED_MSG = 'Android device is not rooted. CTS root tests require root.'


def run_shell_command(ad: android_device.AndroidDevice,
                      command: ShellCommand) -> str:
  """Runs a shell command on the device and returns its decoded output.

  Raises:
    adb.AdbError: If the command exits with a non-zero code.
  """
  output = ad.adb.shell(command)
  return output.decode('utf-8', errors='ignore').strip()


def ensure_root(ad: android_device.AndroidDevice) -> None:
  """Restarts adbd as root when possible, skips the test otherwise."""
  if not ad.is_adb_root and ad.is_rootable:
    ad.adb.root()
  asserts.skip_if(not ad.is_adb_root, _NOT_ROOTED_MSG)


def wake_and_unlock(ad: android_device.AndroidDevice) -> None:
  """Turns the screen on and dismisses the keyguard."""
  ad.adb.shell(['input', 'keyevent', 'KEYCODE_WAKEUP'])
  ad.adb.shell(['wm', 'dismiss-keyguard'])


def load_uiautomator(
    ad: android_device.AndroidDevice,
    uiautomator_snippet_name: str = 'uia',
) -> None:
  """Registers Snippet UiAutomator on the device as `ad.<snippet_name>`."""
  if ad.services.has_service_by_name(uiautomator.ANDROID_SERVICE_NAME):
    ad.log.debug('The uiautomator service is already running')
    return

  ad.services.register(
      alias=uiautomator.ANDROID_SERVICE_NAME,
      service_class=uiautomator.UiAutomatorService,
      configs=uiautomator.UiAutomatorConfigs(
          snippet=uiautomator.Snippet(
              ui_public_service_name=uiautomator_snippet_name,
          )
      ),
  )


def start_logcat_publisher(ad: android_device.AndroidDevice) -> None:
  """Registers the logcat publisher service as `ad.services.logcat_pubsub`."""
  if ad.services.has_service_by_name(logcat_pubsub_service.SERVICE_NAME):
    return
  ad.services.register(
      logcat_pubsub_service.SERVICE_NAME,
      logcat_pubsub_service.LogcatPublisherService,
  )


def has_ui_object(
    ad: android_device.AndroidDevice,
    timeout: datetime.timedelta,
    **selector: str,
) -> bool:
  """Returns True if an on-screen element matching `selector` shows up."""
  return ad.uia(**selector).wait.exists(timeout)


def wait_ui_object_gone(
    ad: android_device.AndroidDevice,
    timeout: datetime.timedelta,
    **selector: str,
) -> bool:
  """Returns True if the element matching `selector` disappears in time."""
  return ad.uia(**selector).wait.gone(timeout)


def get_file_size(ad: android_device.AndroidDevice,
                  path: str) -> Optional[int]:
  """Returns the byte length of a file on the device, None if it is missing."""
  try:
    return int(run_shell_command(ad, ['stat', '-c', '%s', path]))
  except adb.AdbError:
    ad.log.debug('File %s does not exist on device.', path)
    return None


def list_directory(
    ad: android_device.AndroidDevice,
    path: str,
    pattern: str = '.*',
) -> list[str]:
  """Lists the entry names in a device directory that fully match `pattern`.

  Args:
    ad: The Android device to query.
    path: The directory on the device.
    pattern: Regular expression an entry name must fully match.

  Returns:
    Sorted list of matching entry names. Empty if the directory is missing.
  """
  try:
    output = run_shell_command(ad, ['ls', '-1', path])
  except adb.AdbError:
    ad.log.debug('Directory %s does not exist on device.', path)
    return []
  regex = re.compile(pattern)
  return sorted(
      name for name in output.splitlines() if regex.fullmatch(name.strip())
  )


def is_service_registered(ad: android_device.AndroidDevice,
                          service_name: str) -> bool:
  """Returns True if the service manager knows a service named so."""
  output = run_shell_command(ad, ['service', 'check', service_name])
  return not output.endswith(_SERVICE_NOT_FOUND_SUFFIX)


def wait_for_service_to_stop(
    ad: android_device.AndroidDevice,
    service_name: str,
    interval: datetime.timedelta = _SERVICE_STOP_POLLING_INTERVAL,
    max_attempts: int = _SERVICE_STOP_MAX_ATTEMPTS,
) -> bool:
  """Polls the service manager until `service_name` is no longer registered.

  Returns:
    True if the service stopped, False if it was still registered after
    `max_attempts` checks.
  """
  stopped = polling.poll_until(
      lambda: not is_service_registered(ad, service_name),
      interval=interval,
      max_attempts=max_attempts,
  )
  if not stopped:
    ad.log.warning('Service %s is still registered.', service_name)
  return stopped


def assert_wait_condition_true(
    func: Callable[[], bool],
    timeout: datetime.timedelta = _DEFAULT_CONDITION_TIMEOUT,
    assert_if_failed: bool = True,
    fail_message: str = _CONDITION_NOT_TRUE_MSG,
    interval: datetime.timedelta = _DEFAULT_POLLING_INTERVAL,
) -> bool:
  """Asserts if the target function returns true in given timeout.

  Args:
    func: The condition to poll.
    timeout: The polling budget.
    assert_if_failed: Fails the test on timeout if True, only logs otherwise.
    fail_message: The message reported on timeout.
    interval: The delay between two checks.

  Returns:
    True if the condition became true. Only returns False when
    `assert_if_failed` is False.
  """
  if polling.poll_until(
      func,
      interval=interval,
      max_attempts=polling.attempts_for_timeout(timeout, interval),
  ):
    return True

  if assert_if_failed:
    asserts.fail(fail_message)
  logging.error(fail_message)
  return False


def install_packages(
    ad: android_device.AndroidDevice,
    apk_paths: Sequence[str],
) -> bool:
  """Installs one or more APKs from the host in a single session.

  Several APKs are installed as one multi-package session, so either all of
  them are committed or none.

  Returns:
    True if the installation succeeded, False if the device rejected it.
  """
  args = ['-r', '-t']
  try:
    if len(apk_paths) > 1:
      ad.adb.install_multi_package(args + list(apk_paths))
    else:
      ad.adb.install(args + list(apk_paths))
  except adb.AdbError as e:
    ad.log.info('Installation of %s failed: %s', apk_paths, e.stderr)
    return False
  return True


def uninstall_package(ad: android_device.AndroidDevice,
                      package_name: str) -> None:
  """Uninstalls a package, ignoring packages that are not installed."""
  try:
    ad.adb.shell(['pm', 'uninstall', package_name])
  except adb.AdbError:
    ad.log.debug('Package %s was not installed.', package_name)
